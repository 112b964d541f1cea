import typer
from typing_extensions import Annotated
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.panel import Panel
from pathlib import Path
from typing import List, Optional
import asyncio
import httpx
import logging

from xmasmagic import __version__
from xmasmagic.config import settings
from xmasmagic.core import generate_text_to_image
from xmasmagic.exceptions import XmasMagicError
from xmasmagic.models import TaskStatus, TextToImageParams
from xmasmagic.prompts import build_prompt
from xmasmagic.sizes import DEFAULT_SIZE, SIZE_PRESETS
from xmasmagic.tasks import TaskTracker, extract_image
from xmasmagic.providers.ark_provider import ArkProvider
from xmasmagic.utils import generate_filename, result_extension, save_result

app = typer.Typer(
    name="xmasmagic",
    help="🎄 Turn your photos into Christmas pictures with Seedream.",
    add_completion=False,
)
console = Console()

STATUS_STYLES = {
    TaskStatus.PENDING: "yellow",
    TaskStatus.GENERATING: "cyan",
    TaskStatus.SUCCESS: "green",
    TaskStatus.ERROR: "red",
}


def version_callback(value: bool):
    if value:
        console.print(f"xmasmagic Version: [bold green]{__version__}[/bold green]")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            help="Log debug output, including the request bodies sent to the API.",
            is_flag=True,
        ),
    ] = False,
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


@app.command()
def christmas(
    files: Annotated[
        List[Path],
        typer.Argument(help="Photos to transform.", exists=True, dir_okay=False),
    ],
    size: Annotated[
        str,
        typer.Option(help="Output size: a preset (2K, 3K, 4K) or WxH, e.g. 1440x2560."),
    ] = "2K",
    api_key: Annotated[
        Optional[str],
        typer.Option(
            "--api-key",
            help="Ark API key. Falls back to VOLC_ARK_API_KEY.",
            show_default=False,
        ),
    ] = None,
    hats: Annotated[
        bool, typer.Option("--hats/--no-hats", help="Put Santa hats on every head.")
    ] = True,
    festive: Annotated[
        bool,
        typer.Option(
            "--festive/--no-festive", help="Add lights, garlands and snow to the background."
        ),
    ] = True,
    intensity: Annotated[
        str, typer.Option(help="Effect strength ('natural' or 'strong').")
    ] = "natural",
    output_dir: Annotated[
        Optional[Path],
        typer.Option("--output-dir", "-o", help="Where to save the results."),
    ] = None,
    max_concurrency: Annotated[
        Optional[int],
        typer.Option(
            "--max-concurrency",
            min=1,
            help="Cap on simultaneous requests. Unbounded by default.",
        ),
    ] = None,
    save: Annotated[
        bool, typer.Option("--save/--no-save", help="Download the generated images.")
    ] = True,
):
    """Apply the Christmas transformation to each photo."""
    if intensity not in ("natural", "strong"):
        console.print("[bold red]Error:[/bold red] --intensity must be 'natural' or 'strong'.")
        raise typer.Exit(code=1)

    tracker = TaskTracker(
        max_concurrency=max_concurrency or settings.max_concurrency,
        provider_factory=ArkProvider,
    )
    with console.status("[spinner]Preparing photos...", spinner="dots"):
        tracker.add_tasks(files)
    if not tracker.tasks:
        console.print("[bold red]Error:[/bold red] None of the files could be read as images.")
        raise typer.Exit(code=1)
    skipped = len(files) - len(tracker.tasks)
    if skipped:
        console.print(f"[yellow]Skipped {skipped} unreadable file(s).[/yellow]")

    prompt = build_prompt(add_hats=hats, enhance_env=festive, intensity=intensity)
    console.print(f"🎅 Generating {tracker.pending_count} photo(s) at size {size}")
    with console.status("[spinner]Working some magic...", spinner="dots"):
        asyncio.run(tracker.generate_all(prompt, size=size, api_key=api_key))

    target_dir = output_dir or Path(settings.output_dir)
    table = Table(title="🎄 Results")
    table.add_column("Photo", style="cyan", no_wrap=True)
    table.add_column("Status")
    table.add_column("Result / Error", overflow="fold")

    async def _save_all():
        saved = {}
        for task in tracker.tasks:
            if task.status == TaskStatus.SUCCESS and task.result_url:
                extension = result_extension(task.result_url)
                filename = (
                    f"{Path(str(task.source)).stem}-{task.id[:8]}-"
                    f"{generate_filename(extension)}"
                )
                saved[task.id] = await save_result(task.result_url, target_dir, filename)
        return saved

    saved = asyncio.run(_save_all()) if save else {}
    for task in tracker.tasks:
        style = STATUS_STYLES[task.status]
        if task.status == TaskStatus.SUCCESS:
            detail = str(saved.get(task.id) or task.result_url)
        else:
            detail = task.error_message or ""
        table.add_row(
            Path(str(task.source)).name,
            f"[{style}]{task.status.value}[/{style}]",
            detail,
        )
    console.print(table)

    if any(t.status == TaskStatus.ERROR for t in tracker.tasks):
        raise typer.Exit(code=1)


@app.command()
def text(
    prompt: Annotated[
        Optional[str],
        typer.Option(
            "--prompt",
            "-p",
            help="The text prompt for image generation. If not provided, you will be asked to enter it.",
            show_default=False,
        ),
    ] = None,
    size: Annotated[
        str, typer.Option(help="Output size: a preset (2K, 3K, 4K) or WxH.")
    ] = "2K",
    n: Annotated[
        Optional[int],
        typer.Option("--num-images", "-n", min=1, help="Number of images to generate."),
    ] = None,
    watermark: Annotated[
        bool, typer.Option("--watermark", help="Ask the service to watermark output.", is_flag=True)
    ] = False,
    api_key: Annotated[
        Optional[str],
        typer.Option("--api-key", help="Ark API key. Falls back to VOLC_ARK_API_KEY."),
    ] = None,
    output_dir: Annotated[
        Optional[Path],
        typer.Option("--output-dir", "-o", help="Where to save the results."),
    ] = None,
):
    """Generate an image from a prompt alone."""
    if prompt is None:
        prompt = typer.prompt("Please enter the prompt for image generation")
    console.print(f'📜 Prompt: "{prompt}"')
    params = TextToImageParams(prompt=prompt, size=size, n=n, watermark=watermark)

    async def _generate():
        response = await generate_text_to_image(params, api_key)
        image = extract_image(response)
        if image is None:
            return None, None
        return image, await save_result(image, output_dir or Path(settings.output_dir))

    try:
        with console.status("[spinner]Processing...", spinner="dots"):
            image, saved_path = asyncio.run(_generate())
    except (XmasMagicError, httpx.HTTPError) as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)

    if image is None:
        console.print("\n[bold red]Error:[/bold red] no image returned")
        raise typer.Exit(code=1)
    message = "Image generated successfully!"
    if saved_path:
        message += f" Saved to: [green]{saved_path}[/green]"
    elif not image.startswith("data:"):
        message += f" URL: [blue]{image}[/blue] (save failed)"
    console.print(Panel(message, title="[bold green]Success ✨[/bold green]", expand=False))


@app.command(name="sizes")
def list_sizes_command():
    """List the size presets the service accepts."""
    table = Table(title="📐 Size Presets")
    table.add_column("Preset", style="cyan", no_wrap=True)
    table.add_column("Resolution", style="green")
    for label, value in SIZE_PRESETS.items():
        table.add_row(label, value)
    table.add_row("(default)", DEFAULT_SIZE)
    console.print(table)


@app.command()
def serve(
    host: Annotated[Optional[str], typer.Option(help="Bind address.")] = None,
    port: Annotated[Optional[int], typer.Option(help="Port to listen on.")] = None,
    debug: Annotated[bool, typer.Option("--debug", is_flag=True)] = False,
):
    """Run the JSON API server."""
    from xmasmagic.web_server import create_app

    bind_host = host or settings.host
    bind_port = port or settings.port
    console.print("🎄 Starting xmasmagic web server...")
    console.print(f"🔑 Server API key configured: {'yes' if settings.api_key else 'no'}")
    console.print(f"🌐 API available at: http://{bind_host}:{bind_port}/api/ai/i2i")
    create_app().run(host=bind_host, port=bind_port, debug=debug, threaded=True)


if __name__ == "__main__":
    app()
