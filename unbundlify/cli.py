"""CLI interface for unbundlify."""

import json
import logging
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table
from tqdm import tqdm

from unbundlify import __version__
from unbundlify.config import Config
from unbundlify.core.bundles import extract_modules, parse_modules, resolve_module_names
from unbundlify.core.generator import generate_code, module_output_path, save_output
from unbundlify.core.nodes import Node
from unbundlify.core.parser import parse_file
from unbundlify.exceptions import UnbundlifyError
from unbundlify.plugins import PluginContext, create_transform_chain

console = Console()

# Debug logger
debug_logger = None
debug_log_file = None


def setup_debug_logger(log_path: Optional[Path] = None) -> logging.Logger:
    """Setup debug logger for detailed logging."""
    global debug_logger, debug_log_file

    if log_path is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_path = Path(f"unbundlify_debug_{timestamp}.log")

    debug_log_file = log_path

    logger = logging.getLogger("unbundlify_debug")
    logger.setLevel(logging.DEBUG)

    # Clear existing handlers
    logger.handlers = []

    fh = logging.FileHandler(log_path, encoding='utf-8')
    fh.setLevel(logging.DEBUG)

    formatter = logging.Formatter(
        '%(asctime)s | %(levelname)-8s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    fh.setFormatter(formatter)
    logger.addHandler(fh)

    debug_logger = logger
    return logger


def debug_log(level: str, message: str, data: dict = None):
    """Log debug message with optional structured data."""
    if debug_logger is None:
        return

    log_func = getattr(debug_logger, level.lower(), debug_logger.info)

    if data:
        data_str = json.dumps(data, ensure_ascii=False, indent=2, default=str)
        log_func(f"{message}\n{data_str}")
    else:
        log_func(message)


def build_config(
    no_mods: bool = False,
    no_code: bool = False,
    no_vars: bool = False,
    names: Optional[str] = None,
    **overrides,
) -> Config:
    """Create the configuration, letting command line flags override .env values."""
    config_kwargs = dict(overrides)
    if no_mods or no_code:
        config_kwargs["rewrite_code"] = False
    if no_mods or no_vars:
        config_kwargs["rename_variables"] = False
    if names:
        config_kwargs["name_style"] = names
    return Config(**config_kwargs)


def transform_tree(
    tree: Node,
    config: Config,
    scope=None,
    file_path: Optional[Path] = None,
) -> dict:
    """Run the readability pipeline over a tree, in place.

    Returns:
        Counts reported by the plugins
    """
    chain = create_transform_chain(style=config.name_style.value, seed=config.name_seed)
    context = PluginContext(
        tree=tree,
        scope=scope,
        file_path=file_path,
        rename_variables=config.rename_variables,
        rewrite_code=config.rewrite_code,
    )
    context = chain.run(context)
    return context.metadata


def process_file(file_path: Path, config: Config) -> dict:
    """Beautify a script in place.

    Args:
        file_path: Script to rewrite
        config: Configuration

    Returns:
        Processing statistics
    """
    console.print(f"[blue]Beautifying[/blue] {file_path}")
    stats = {"file": str(file_path)}

    tree = parse_file(file_path)
    stats.update(transform_tree(tree, config, file_path=file_path))
    debug_log("info", f"Transformed {file_path}", stats)

    save_output(generate_code(tree, indent_size=config.indent_size), file_path)
    return stats


def unbundle_file(file_path: Path, target_dir: Path, config: Config) -> list[dict]:
    """Split a bundle into one file per module.

    Args:
        file_path: Bundle to split
        target_dir: Directory receiving the module files
        config: Configuration

    Returns:
        Processing statistics for each written module
    """
    console.print(f"[blue]Unbundling[/blue] {file_path} [dim]into {target_dir}[/dim]")
    tree = parse_file(file_path)
    modules = list(parse_modules(tree))
    console.print(f"[green]Found {len(modules)} modules[/green]")

    results = []
    for module in tqdm(modules, desc="Modules", unit="module"):
        output_path = module_output_path(target_dir, module.name)
        program = Node(type="Program", body=module.node.body, sourceType="script")

        stats = {"file": module.name, "module_id": module.module_id}
        stats.update(transform_tree(program, config, scope=module.scope, file_path=output_path))
        debug_log("info", f"Transformed module {module.name}", stats)

        save_output(generate_code(program, indent_size=config.indent_size), output_path)
        results.append(stats)
    return results


def _record_failure(file_path: Path, error: Exception) -> dict:
    console.print(f"[red]Error processing {file_path}: {error}[/red]")
    debug_log("error", f"Failed to process {file_path}", {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "traceback": traceback.format_exc(),
    })
    return {"file": str(file_path), "error": str(error)}


def _print_summary(results: list[dict], columns: list[tuple[str, str]]) -> None:
    table = Table(title="Processing Summary")
    table.add_column("File")
    for title, _ in columns:
        table.add_column(title)
    table.add_column("Status")

    for r in results:
        status = "✓" if "error" not in r else "✗"
        table.add_row(
            r.get("file", "unknown"),
            *[str(r.get(key, 0)) for _, key in columns],
            status,
        )

    console.print(table)


_SUMMARY_COLUMNS = [
    ("Generated Names", "generated_names"),
    ("Rewritten Nodes", "rewritten_nodes"),
    ("Deduced Names", "deduced_names"),
]


def _start(config: Config, debug: bool, debug_file: Optional[Path], **details) -> None:
    sys.setrecursionlimit(max(sys.getrecursionlimit(), config.recursion_limit))

    if debug or debug_file or config.debug_log_file:
        setup_debug_logger(debug_file or config.debug_log_file)
        console.print(f"[yellow]Debug logging enabled: {debug_log_file}[/yellow]")
        debug_log("info", "Debug logging started", {
            **details,
            "rename_variables": config.rename_variables,
            "rewrite_code": config.rewrite_code,
            "name_style": config.name_style.value,
            "name_seed": config.name_seed,
        })


def _finish(results: list[dict]) -> None:
    debug_log("info", "Processing complete", {"results": results})
    if debug_logger is not None:
        console.print(f"\n[yellow]Debug log saved to: {debug_log_file}[/yellow]")
    if any("error" in r for r in results):
        raise SystemExit(1)


def transform_options(func):
    """Options shared by the commands that rewrite code."""
    options = [
        click.option("-n", "--no-mods", is_flag=True, help="Disable all modifications, reformat only"),
        click.option("-c", "--no-code", is_flag=True, help="Disable code rewriting"),
        click.option("-v", "--no-vars", is_flag=True, help="Disable variable name modification"),
        click.option(
            "--names",
            type=click.Choice(["dictionary", "phonetic"], case_sensitive=False),
            help="Style of generated variable names",
        ),
        click.option("--debug", is_flag=True, help="Enable debug logging to file"),
        click.option(
            "--debug-file",
            type=click.Path(path_type=Path),
            help="Debug log file path (default: unbundlify_debug_TIMESTAMP.log)",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.version_option(version=__version__)
def main():
    """Unbundlify - split JavaScript bundles and make minified code readable."""
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")


@main.command()
@click.argument("scripts", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@transform_options
def beautify(
    scripts: tuple[Path, ...],
    no_mods: bool,
    no_code: bool,
    no_vars: bool,
    names: Optional[str],
    debug: bool,
    debug_file: Optional[Path],
):
    """Rewrite minified scripts in place."""
    config = build_config(no_mods, no_code, no_vars, names)
    _start(config, debug, debug_file, scripts=[str(s) for s in scripts])

    results = []
    for script in scripts:
        try:
            results.append(process_file(script, config))
        except Exception as e:
            results.append(_record_failure(script, e))

    _print_summary(results, _SUMMARY_COLUMNS)
    _finish(results)


@main.command()
@click.argument("script", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("target_dir", required=False, type=click.Path(file_okay=False, path_type=Path))
@transform_options
def unbundle(
    script: Path,
    target_dir: Optional[Path],
    no_mods: bool,
    no_code: bool,
    no_vars: bool,
    names: Optional[str],
    debug: bool,
    debug_file: Optional[Path],
):
    """Split a Browserify or Webpack bundle into one file per module.

    TARGET_DIR defaults to the configured output directory.
    """
    config = build_config(no_mods, no_code, no_vars, names)
    target_dir = target_dir or config.output_dir
    if target_dir is None:
        console.print("[red]Error: no target directory given. Pass TARGET_DIR or set UNBUNDLIFY_OUTPUT_DIR[/red]")
        raise SystemExit(1)

    _start(config, debug, debug_file, script=str(script), target_dir=str(target_dir))

    try:
        results = unbundle_file(script, target_dir, config)
    except Exception as e:
        results = [_record_failure(script, e)]

    _print_summary(results, _SUMMARY_COLUMNS)
    _finish(results)


@main.command()
@click.argument("script", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def modules(script: Path):
    """List the modules of a bundle and the names they resolve to."""
    config = Config()
    sys.setrecursionlimit(max(sys.getrecursionlimit(), config.recursion_limit))

    try:
        layout = extract_modules(parse_file(script))
        names = resolve_module_names(layout)
    except UnbundlifyError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    console.print(f"[blue]File:[/blue] {script}")
    console.print(f"[blue]Format:[/blue] {layout.format.value}")

    table = Table(title="Modules")
    table.add_column("Id")
    table.add_column("Name")
    table.add_column("Entry")
    for module_id in layout.modules:
        table.add_row(
            str(module_id),
            names[module_id].rstrip("/") or "/",
            "✓" if module_id in layout.entry_ids else "",
        )
    console.print(table)


if __name__ == "__main__":
    main()
