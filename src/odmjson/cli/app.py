import typer
import rich_click  # noqa: F401
from .generate import generate
from .list_plugins import list_plugins
from odmjson import __version__

app = typer.Typer(
    name="odmjson",
    help="Project document-mapper model schemas into Swagger model definitions",
    no_args_is_help=True,
)

@app.command("version")
def version() -> None:
    """Show the odmjson version."""
    typer.echo(f"odmjson v{__version__}")

app.command()(generate)
app.command("list-plugins")(list_plugins)
