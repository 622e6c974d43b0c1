"""Component directories imported by the CLI tests."""

from strata import ComponentDirectory, make_loader

components = ComponentDirectory()


@components.component(requires=["profile"])
def setup_config(ctx):
    return {"profile": ctx.profile, "port": 8080}


@components.component(requires=["config"])
def setup_server(ctx):
    return f"server:{ctx.config['port']}"


@components.component(requires=["config", "server"])
async def setup_app(ctx):
    return f"app({ctx.server})"


loader = make_loader(components, virtual=["profile"])

plain = {
    "base": {"setup": lambda ctx: 1},
    "derived": {"requires": ["base"], "setup": lambda ctx: ctx.base + 1},
}

cyclic = {
    "a": {"requires": ["b"], "setup": lambda ctx: None},
    "b": {"requires": ["a"], "setup": lambda ctx: None},
}

not_a_directory = 42
