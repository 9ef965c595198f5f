import json
import logging
import sys
from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from cafmeta.format import (
    CafError,
    ChannelLayoutError,
    open_audio_file,
    roles_for_layout,
    scan_metadata_file,
)
from cafmeta.format.extractors import RESERVED_KEYS
from cafmeta.format.layouts import known_layout_tags, num_channels_in_tag, roles_for_tag, tag_name

app = App(name="cafmeta", help="Inspect metadata and channel layouts of CAF files")
console = Console()


def configure_logging(verbose: bool) -> None:
    """Send library logging through rich; debug output with ``--verbose``."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def print_error(message: str) -> None:
    """Print an error message in red."""
    console.print(message, style="bold red")


def print_warning(message: str) -> None:
    """Print a warning message in yellow."""
    console.print(message, style="bold yellow")


@app.command
def info(
    file: Path,
    strict_layout: bool = False,
    verbose: bool = False,
) -> int:
    """
    Display the stream description, channel layout and channel map of a file.

    Parameters
    ----------
    file: Path
        The audio file to inspect
    strict_layout: bool
        Fail on channel layout table inconsistencies instead of using file order
    verbose: bool
        Show debug logging
    """
    configure_logging(verbose)

    try:
        audio = open_audio_file(file, strict_layout=strict_layout)
    except (CafError, ChannelLayoutError) as e:
        print_error(f"Error: {e}")
        return 1

    description = audio.description
    console.print(f"[bold]File:[/bold] {file}")
    console.print(f"  Container: {'CAF' if audio.is_caf else 'other'}")
    console.print(f"  Format: {description.format_name}")
    console.print(f"  Sample rate: {description.sample_rate:g} Hz")
    console.print(f"  Channels: {description.num_channels}")
    console.print(f"  Bit depth: {description.bits_per_sample}")
    console.print(f"  Floating point: {'yes' if description.uses_float else 'no'}")
    console.print(f"  Frames: {description.length_in_frames:,}")
    console.print(f"  Duration: {description.duration_seconds:.3f}s")

    if audio.layout is None:
        console.print("  Layout: (none)")
    else:
        console.print(f"  Layout: {tag_name(audio.layout.tag)}")
        try:
            declared = roles_for_layout(audio.layout)
        except ValueError:
            declared = ()

        table = Table(title="Channel map")
        table.add_column("File channel", justify="right")
        table.add_column("Role")
        table.add_column("Canonical slot", justify="right")
        for channel, slot in enumerate(audio.channel_map):
            role = declared[channel].name if channel < len(declared) else "?"
            table.add_row(str(channel), role, str(slot))
        console.print(table)

    console.print(f"  Metadata entries: {len(audio.metadata)}")
    return 0


@app.command
def metadata(
    file: Path,
    output_json: Annotated[bool, Parameter(name=["--json"])] = False,
    verbose: bool = False,
) -> int:
    """
    Print the metadata stored in a CAF file.

    Parameters
    ----------
    file: Path
        The CAF file to scan
    output_json: bool
        Output the metadata as a JSON object (default: False)
    verbose: bool
        Show debug logging
    """
    configure_logging(verbose)

    if not file.exists():
        print_error(f"Error: File {file} does not exist")
        return 1

    try:
        is_caf, entries = scan_metadata_file(file)
    except OSError as e:
        print_error(f"Error: Cannot read {file}: {e}")
        return 1

    if not is_caf:
        print_warning(f"{file} is not a CAF file")
        return 1

    if output_json:
        console.print(json.dumps(dict(entries), indent=2), markup=False, soft_wrap=True)
        return 0

    if not entries:
        console.print("No metadata")
        return 0

    table = Table(title=str(file))
    table.add_column("Key", style="cyan")
    table.add_column("Value", overflow="fold")
    for key, value in entries.items():
        style = "bold" if key in RESERVED_KEYS else None
        table.add_row(key, value, style=style)
    console.print(table)
    return 0


@app.command
def layouts() -> int:
    """
    List the channel layout tags with a known speaker order.
    """
    table = Table(title="Channel layouts")
    table.add_column("Tag")
    table.add_column("Value", justify="right")
    table.add_column("Channels", justify="right")
    table.add_column("Roles (file order)", overflow="fold")
    for tag in known_layout_tags():
        roles = " ".join(role.name for role in roles_for_tag(tag))
        table.add_row(tag.name, f"0x{int(tag):08X}", str(num_channels_in_tag(tag)), roles)
    console.print(table)
    return 0


def main() -> None:
    sys.exit(app())


if __name__ == "__main__":
    main()
