"""CLI for the storymap document engine.

Convention-based: discovers .storymap/ by walking up from cwd.

Usage:
    storymap init                                  # Initialize .storymap/ in cwd
    storymap create "Checkout revamp"              # Create a document
    storymap list                                  # List documents
    storymap show <doc>                            # Print the outline
    storymap add-theme <doc>                       # Append a theme
    storymap add-backbone <doc> <theme>            # Append a backbone item
    storymap add-rib <doc> <theme> <backbone>      # Append a rib item
    storymap rename <doc> <node> "New name"        # Rename any node
    storymap delete <doc> <node>                   # Delete a theme/backbone/rib
    storymap add-release <doc> --after <release>   # Insert a release
    storymap allocate <doc> <rib> -r <release>=60  # Replace a rib's allocations
    storymap progress <doc> <rib> <sprint> 50      # Record sprint progress
    storymap export <doc> -o map.json              # Write JSON
    storymap import map.json                       # Read JSON
"""

from __future__ import annotations

import json as json_mod
import sys
from pathlib import Path

import click

from storymap import __version__
from storymap.cleanup import has_allocations_for_release
from storymap.cli_common import (
    IdRecorder,
    close_storage,
    find_node,
    get_storymap_dir,
    open_storage,
    open_store,
)
from storymap.config import STORYMAP_DIR_NAME, VALID_MODES, write_config
from storymap.logging import setup_logging
from storymap.models import Document, ReleaseAllocation
from storymap.ordering import sort_by_order
from storymap.portability import create_document, duplicate_document, export_document, import_document
from storymap.storage import LocalStorageDriver
from storymap.tree import Patch


def _echo_error(message: str, as_json: bool = False) -> None:
    if as_json:
        click.echo(json_mod.dumps({"error": message}))
    else:
        click.echo(f"Error: {message}", err=True)


def _report_created(kind: str, new_id: str | None, as_json: bool) -> None:
    if as_json:
        click.echo(json_mod.dumps({"kind": kind, "id": new_id}))
    else:
        click.echo(f"Added {kind} {new_id}")


@click.group()
@click.version_option(version=__version__, prog_name="storymap")
def cli() -> None:
    """Storymap: theme/backbone/rib story maps with releases and sprints."""


@cli.command()
@click.option("--mode", type=click.Choice(sorted(VALID_MODES)), default="local", help="Storage mode")
@click.option("--remote-url", default=None, help="Document service URL (synchronized mode)")
def init(mode: str, remote_url: str | None) -> None:
    """Initialize .storymap/ in the current directory."""
    cwd = Path.cwd()
    storymap_dir = cwd / STORYMAP_DIR_NAME
    if storymap_dir.exists():
        click.echo(f"{STORYMAP_DIR_NAME}/ already exists in {cwd}")
        return
    if mode == "synchronized" and not remote_url:
        _echo_error("--remote-url is required for synchronized mode")
        sys.exit(1)

    storymap_dir.mkdir()
    config: dict[str, str] = {"mode": mode}
    if remote_url:
        config["remote_url"] = remote_url
    write_config(storymap_dir, config)
    setup_logging(storymap_dir)
    click.echo(f"Initialized {STORYMAP_DIR_NAME}/ in {cwd}")
    click.echo(f"  Mode: {mode}")


@cli.command()
@click.argument("name")
@click.option("--description", "-d", default="", help="Description")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def create(name: str, description: str, as_json: bool) -> None:
    """Create an empty document."""
    storage = open_storage(get_storymap_dir())
    try:
        document = create_document(name, description)
        storage.save_document(document)
    finally:
        close_storage(storage)
    if as_json:
        click.echo(json_mod.dumps({"id": document.id, "name": document.name}))
    else:
        click.echo(f"Created {document.id}: {document.name}")


@cli.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_documents(as_json: bool) -> None:
    """List documents in this project."""
    storage = open_storage(get_storymap_dir())
    if not isinstance(storage, LocalStorageDriver):
        close_storage(storage)
        _echo_error("Listing is only available in local mode", as_json)
        sys.exit(1)
    entries = sorted(storage.list_documents(), key=lambda e: e.get("updatedAt", ""), reverse=True)
    if as_json:
        click.echo(json_mod.dumps(entries, indent=2))
        return
    if not entries:
        click.echo("No documents.")
        return
    for entry in entries:
        click.echo(f"{entry['id']}  {entry['name']}  (updated {entry.get('updatedAt', '')})")


def _print_outline(document: Document) -> None:
    click.echo(f"{document.name}  [{document.id}]")
    if document.description:
        click.echo(f"  {document.description}")
    for theme in sort_by_order(document.themes):
        click.echo(f"- {theme.name}  [{theme.id}]")
        for backbone in sort_by_order(theme.backbone_items):
            click.echo(f"  - {backbone.name}  [{backbone.id}]")
            for rib in sort_by_order(backbone.rib_items):
                size = f" {rib.size}" if rib.size else ""
                releases = ", ".join(f"{a.release_id}:{a.percentage:g}%" for a in rib.release_allocations)
                suffix = f"  -> {releases}" if releases else ""
                click.echo(f"    - {rib.name}{size} ({rib.category})  [{rib.id}]{suffix}")
    if document.releases:
        click.echo("Releases:")
        for release in sort_by_order(document.releases):
            target = f"  target {release.target_date}" if release.target_date else ""
            click.echo(f"  {release.order}. {release.name}  [{release.id}]{target}")
    if document.sprints:
        click.echo("Sprints:")
        for sprint in sort_by_order(document.sprints):
            end = f"  ends {sprint.end_date}" if sprint.end_date else ""
            click.echo(f"  {sprint.order}. {sprint.name}  [{sprint.id}]{end}")


@cli.command()
@click.argument("document_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def show(document_id: str, as_json: bool) -> None:
    """Show a document outline."""
    with open_store(document_id, op="show") as (_, document):
        if as_json:
            click.echo(json_mod.dumps(document.to_dict(), indent=2))
        else:
            _print_outline(document)


# -- Tree ---------------------------------------------------------------------


@cli.command("add-theme")
@click.argument("document_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def add_theme(document_id: str, as_json: bool) -> None:
    """Append a theme."""
    ids = IdRecorder()
    with open_store(document_id, op="add_theme", new_id=ids) as (store, _):
        store.add_theme()
    _report_created("theme", ids.last, as_json)


@cli.command("add-backbone")
@click.argument("document_id")
@click.argument("theme_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def add_backbone(document_id: str, theme_id: str, as_json: bool) -> None:
    """Append a backbone item to a theme."""
    ids = IdRecorder()
    with open_store(document_id, op="add_backbone", new_id=ids) as (store, _):
        store.add_backbone(theme_id)
    if ids.last is None:
        _echo_error(f"Theme not found: {theme_id}", as_json)
        sys.exit(1)
    _report_created("backbone", ids.last, as_json)


@cli.command("add-rib")
@click.argument("document_id")
@click.argument("theme_id")
@click.argument("backbone_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def add_rib(document_id: str, theme_id: str, backbone_id: str, as_json: bool) -> None:
    """Append a rib item to a backbone."""
    ids = IdRecorder()
    with open_store(document_id, op="add_rib", new_id=ids) as (store, _):
        store.add_rib(theme_id, backbone_id)
    if ids.last is None:
        _echo_error(f"Backbone not found: {theme_id}/{backbone_id}", as_json)
        sys.exit(1)
    _report_created("rib", ids.last, as_json)


@cli.command()
@click.argument("document_id")
@click.argument("node_id")
@click.argument("name")
def rename(document_id: str, node_id: str, name: str) -> None:
    """Rename a theme, backbone, rib, release or sprint."""
    with open_store(document_id, op="rename") as (store, document):
        found = find_node(document, node_id)
        if found is None:
            click.echo(f"Not found: {node_id}", err=True)
            sys.exit(1)
        kind, path = found
        update = Patch(name=name)
        if kind == "theme":
            store.update_theme(node_id, update)
        elif kind == "backbone":
            store.update_backbone(path[0], node_id, update)
        elif kind == "rib":
            store.update_rib(path[0], path[1], node_id, update)
        elif kind == "release":
            store.update_release(node_id, update)
        else:
            store.update_sprint(node_id, update)
    click.echo(f"Renamed {kind} {node_id}")


@cli.command()
@click.argument("document_id")
@click.argument("node_id")
def delete(document_id: str, node_id: str) -> None:
    """Delete a theme, backbone or rib (and everything under it)."""
    with open_store(document_id, op="delete") as (store, document):
        found = find_node(document, node_id)
        if found is None or found[0] not in ("theme", "backbone", "rib"):
            click.echo(f"Not found: {node_id}", err=True)
            sys.exit(1)
        kind, path = found
        if kind == "theme":
            store.delete_theme(node_id)
        elif kind == "backbone":
            store.delete_backbone(path[0], node_id)
        else:
            store.delete_rib(path[0], path[1], node_id)
    click.echo(f"Deleted {kind} {node_id}")


# -- Releases / sprints -------------------------------------------------------


@cli.command("add-release")
@click.argument("document_id")
@click.option("--after", "after_id", default=None, help="Insert after this release (default: at the end)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def add_release(document_id: str, after_id: str | None, as_json: bool) -> None:
    """Insert a release."""
    ids = IdRecorder()
    with open_store(document_id, op="add_release", new_id=ids) as (store, _):
        store.add_release_after(after_id)
    _report_created("release", ids.last, as_json)


@cli.command("delete-release")
@click.argument("document_id")
@click.argument("release_id")
@click.option("--force", is_flag=True, help="Delete even if ribs are allocated to it")
def delete_release(document_id: str, release_id: str, force: bool) -> None:
    """Delete a release, stripping its allocations and progress."""
    with open_store(document_id, op="delete_release") as (store, document):
        if not any(r.id == release_id for r in document.releases):
            click.echo(f"Not found: {release_id}", err=True)
            sys.exit(1)
        if not force and has_allocations_for_release(document, release_id):
            _echo_error(f"Release {release_id} has allocated rib items; use --force to delete anyway")
            sys.exit(1)
        store.delete_release(release_id)
    click.echo(f"Deleted release {release_id}")


@cli.command("add-sprint")
@click.argument("document_id")
@click.option("--weeks", type=click.IntRange(min=1), default=None, help="Sprint length (default: document cadence)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def add_sprint(document_id: str, weeks: int | None, as_json: bool) -> None:
    """Append a sprint one cadence after the last one."""
    ids = IdRecorder()
    with open_store(document_id, op="add_sprint", new_id=ids) as (store, _):
        store.add_sprint(weeks)
    _report_created("sprint", ids.last, as_json)


@cli.command("delete-sprint")
@click.argument("document_id")
@click.argument("sprint_id")
def delete_sprint(document_id: str, sprint_id: str) -> None:
    """Delete a sprint and its progress entries."""
    with open_store(document_id, op="delete_sprint") as (store, document):
        if not any(s.id == sprint_id for s in document.sprints):
            click.echo(f"Not found: {sprint_id}", err=True)
            sys.exit(1)
        store.delete_sprint(sprint_id)
    click.echo(f"Deleted sprint {sprint_id}")


def _require_rib(document: Document, rib_id: str) -> None:
    found = find_node(document, rib_id)
    if found is None or found[0] != "rib":
        click.echo(f"Not found: {rib_id}", err=True)
        sys.exit(1)


def _parse_allocation(value: str) -> ReleaseAllocation:
    release_id, sep, percentage = value.partition("=")
    if not sep:
        return ReleaseAllocation(release_id)
    try:
        return ReleaseAllocation(release_id, float(percentage))
    except ValueError:
        msg = f"Invalid allocation: {value} (expected release_id=percentage)"
        raise click.BadParameter(msg) from None


@cli.command()
@click.argument("document_id")
@click.argument("rib_id")
@click.option("--release", "-r", "releases", multiple=True, help="release_id[=percentage] (repeatable)")
def allocate(document_id: str, rib_id: str, releases: tuple[str, ...]) -> None:
    """Replace a rib's release allocations. No -r clears them."""
    allocations = [_parse_allocation(r) for r in releases]
    with open_store(document_id, op="allocate") as (store, document):
        _require_rib(document, rib_id)
        known = {r.id for r in document.releases}
        for unknown in sorted({a.release_id for a in allocations} - known):
            click.echo(f"Warning: ignoring unknown release {unknown}", err=True)
        store.set_allocations(rib_id, allocations)
    click.echo(f"Allocated {rib_id} to {len([a for a in allocations if a.release_id in known])} release(s)")


# -- Progress -----------------------------------------------------------------


def _require_progress_target(document: Document, rib_id: str, sprint_id: str, release_id: str | None) -> None:
    _require_rib(document, rib_id)
    if not any(s.id == sprint_id for s in document.sprints):
        click.echo(f"Not found: {sprint_id}", err=True)
        sys.exit(1)
    if release_id is not None and not any(r.id == release_id for r in document.releases):
        click.echo(f"Not found: {release_id}", err=True)
        sys.exit(1)


@cli.command()
@click.argument("document_id")
@click.argument("rib_id")
@click.argument("sprint_id")
@click.argument("percent", type=click.FloatRange(0, 100))
@click.option("--release", "release_id", default=None, help="Release the progress applies to")
def progress(document_id: str, rib_id: str, sprint_id: str, percent: float, release_id: str | None) -> None:
    """Record percent complete for a rib in a sprint."""
    with open_store(document_id, op="progress") as (store, document):
        _require_progress_target(document, rib_id, sprint_id, release_id)
        store.update_progress(rib_id, release_id, sprint_id, percent)
    click.echo(f"Recorded {percent:g}% for {rib_id} in {sprint_id}")


@cli.command("clear-progress")
@click.argument("document_id")
@click.argument("rib_id")
@click.argument("sprint_id")
@click.option("--release", "release_id", default=None, help="Release the progress applies to")
def clear_progress(document_id: str, rib_id: str, sprint_id: str, release_id: str | None) -> None:
    """Clear a progress value (a comment, if any, is kept)."""
    with open_store(document_id, op="clear_progress") as (store, document):
        _require_progress_target(document, rib_id, sprint_id, release_id)
        store.remove_progress(rib_id, release_id, sprint_id)
    click.echo(f"Cleared progress for {rib_id} in {sprint_id}")


@cli.command()
@click.argument("document_id")
@click.argument("rib_id")
@click.argument("sprint_id")
@click.argument("text")
@click.option("--release", "release_id", default=None, help="Release the comment applies to")
def comment(document_id: str, rib_id: str, sprint_id: str, text: str, release_id: str | None) -> None:
    """Set the comment on a rib's sprint progress entry."""
    with open_store(document_id, op="comment") as (store, document):
        _require_progress_target(document, rib_id, sprint_id, release_id)
        store.update_comment(rib_id, release_id, sprint_id, text)
    click.echo(f"Commented on {rib_id} in {sprint_id}")


# -- Import / export ----------------------------------------------------------


@cli.command()
@click.argument("document_id")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Write to file")
def export(document_id: str, output: Path | None) -> None:
    """Export a document as JSON."""
    with open_store(document_id, op="export") as (_, document):
        text = export_document(document)
    if output is None:
        click.echo(text, nl=False)
    else:
        output.write_text(text, encoding="utf-8")
        click.echo(f"Exported {document_id} to {output}")


@cli.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--as-copy", is_flag=True, help="Import with fresh ids")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def import_(path: Path, as_copy: bool, as_json: bool) -> None:
    """Import a document from a JSON export."""
    try:
        document = import_document(path.read_text(encoding="utf-8"))
    except ValueError as e:
        _echo_error(str(e), as_json)
        sys.exit(1)
    if as_copy:
        document = duplicate_document(document)
    storage = open_storage(get_storymap_dir())
    try:
        if not as_copy and storage.load_document(document.id) is not None:
            _echo_error(f"Document {document.id} already exists; use --as-copy", as_json)
            sys.exit(1)
        storage.save_document(document)
    finally:
        close_storage(storage)
    if as_json:
        click.echo(json_mod.dumps({"id": document.id, "name": document.name}))
    else:
        click.echo(f"Imported {document.id}: {document.name}")


@cli.command()
@click.argument("document_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def duplicate(document_id: str, as_json: bool) -> None:
    """Copy a document with fresh ids."""
    with open_store(document_id, op="duplicate") as (store, document):
        copy = duplicate_document(document)
        store.storage.save_document(copy)
    if as_json:
        click.echo(json_mod.dumps({"id": copy.id, "name": copy.name}))
    else:
        click.echo(f"Created {copy.id}: {copy.name}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
