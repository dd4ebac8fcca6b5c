"""Code generation using escodegen."""

import os
from pathlib import Path

import escodegen
from rich.console import Console

from unbundlify.core.nodes import Node
from unbundlify.exceptions import PathEscapeError

console = Console()


def generate_code(tree: Node, indent_size: int = 2) -> str:
    """Print a syntax tree as JavaScript source.

    Args:
        tree: Program or other node to print
        indent_size: Number of spaces per indentation level

    Returns:
        Generated source code
    """
    options = {
        "format": {
            "indent": {"style": " " * indent_size},
            "quotes": "double",
            "escapeless": True,
        },
    }
    return escodegen.generate(tree, options)


def module_output_path(target_dir: Path, module_name: str) -> Path:
    """Map a resolved module name to a file below ``target_dir``.

    Args:
        target_dir: Output directory
        module_name: Absolute module name such as ``/lib/index``

    Returns:
        Path of the module file, with ``.js`` added when the name has no extension

    Raises:
        PathEscapeError: If the name resolves outside ``target_dir``
    """
    root = os.path.normpath(os.path.abspath(target_dir))
    path = os.path.normpath(os.path.join(root, module_name.lstrip("/")))
    if "." not in os.path.basename(path):
        path += ".js"

    if os.path.commonpath([root, path]) != root or path == root:
        raise PathEscapeError(f"Unexpected module output path outside of target directory: {path}")
    return Path(path)


def save_output(
    code: str,
    output_path: Path,
    create_dirs: bool = True,
) -> None:
    """Save code to file.

    Args:
        code: Source code to save
        output_path: Path to save to
        create_dirs: Whether to create parent directories
    """
    if create_dirs:
        output_path.parent.mkdir(parents=True, exist_ok=True)

    output_path.write_text(code, encoding="utf-8")
    console.print(f"[green]Saved output to: {output_path}[/green]")
