"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO). Renderers are
dispatched by ``result.op`` in :func:`render_result`; unknown ops fall
through to a generic key-value renderer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from buckle.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from buckle.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich."""
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode: package ids only."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {msg}"
    if result.op == "plan":
        return "\n".join(result.data.get("order", []))
    if result.op == "apply":
        return "\n".join(result.data.get("applied", []))
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    label = Text("OK", style="buckle.ok")
    op = Text(f"  {result.op}", style="buckle.op")
    console.print(label, op, end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    k = Text(f"  {key}: ", style="buckle.key")
    if key in ("config_root", "path"):
        v = Text(str(value), style="buckle.path")
    else:
        v = Text(str(value))
    console.print(k, v, end="")
    console.print()


def _variables_table(variables: dict[str, str]) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False, box=None)
    table.add_column("Name", style="buckle.key", no_wrap=True)
    table.add_column("Value")
    for name, value in variables.items():
        table.add_row(Text(name), Text(value))
    return table


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block including telemetry span tree (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))

    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(
    console: Console,
    span_data: dict[str, Any],
    indent: int = 4,
) -> None:
    """Render a hierarchical span tree with color-coded timing."""
    prefix = " " * indent
    name = span_data.get("name", "?")
    duration = span_data.get("duration_ms", 0.0)

    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"

    line = Text(prefix)
    line.append(f"{duration:>8.2f}ms", style=style)
    line.append(f"  {name}")
    if span_data.get("ok") is False:
        line.append("  failed", style="buckle.error")

    annotations = span_data.get("annotations") or {}
    # Script output gets its own lines below.
    extras = [f"{k}={v}" for k, v in annotations.items() if k not in ("stdout", "stderr")]
    if extras:
        line.append(f"  ({', '.join(extras)})")
    console.print(line)

    for stream in ("stdout", "stderr"):
        text = str(annotations.get(stream) or "").rstrip("\n")
        for out_line in text.splitlines():
            console.print(Text(f"{prefix}    {stream}| {out_line}", style="dim"))

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="buckle.error")
    op = Text(f"  {result.op}", style="buckle.op")
    code = Text(f"  [{err.code}]" if err else "", style="buckle.key")
    console.print(label, op, code, Text(f"  {msg}"))

    if err is None:
        return
    detail = dict(err.detail)
    for key in ("package", "path", "line", "exit_code"):
        if key in detail:
            _field(console, key, detail.pop(key))
    applied = detail.pop("applied", None)
    if applied:
        _field(console, "applied", ", ".join(applied))

    if verbose:
        for key, value in detail.items():
            if key in ("stdout", "stderr"):
                console.print(Text(f"  {key}:", style="buckle.key"))
                for out_line in str(value).rstrip("\n").splitlines():
                    console.print(Text(f"    {out_line}", style="dim"))
            else:
                _field(console, key, value)
        _render_meta(console, result)


# ── Operation renderers ───────────────────────────────────────────────


def _render_plan(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    _field(console, "config_root", d.get("config_root", ""))
    _field(console, "packages", d.get("count", 0))

    globals_ = d.get("globals") or {}
    if globals_:
        console.print()
        console.print(Text("  global variables", style="bold"))
        console.print(_variables_table(globals_))

    for index, pkg in enumerate(d.get("packages", []), start=1):
        console.print()
        header = Text(f"  {index}. ")
        header.append(pkg["id"], style="buckle.id")
        if pkg.get("description"):
            header.append(f"  {pkg['description']}", style="dim")
        console.print(header)
        if pkg.get("needs"):
            console.print(Text(f"     needs: {', '.join(pkg['needs'])}", style="buckle.key"))
        if pkg.get("variables"):
            console.print(_variables_table(pkg["variables"]))
        for f in pkg.get("files", []):
            line = Text(f"     {f['source']} -> ")
            line.append(f["destination"], style="buckle.path")
            if f.get("template"):
                line.append("  (template)", style="buckle.template")
            console.print(line)
        for script in pkg.get("scripts", []):
            console.print(Text(f"     run {script}"))

    if verbose:
        _render_meta(console, result)


def _render_apply(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    _field(console, "config_root", d.get("config_root", ""))
    _field(console, "applied", d.get("count", 0))

    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Package", style="buckle.id", no_wrap=True)
    table.add_column("Files", justify="right")
    table.add_column("Scripts", justify="right")
    for pkg in d.get("packages", []):
        table.add_row(Text(pkg["id"]), str(len(pkg["files"])), str(len(pkg["scripts"])))
    if d.get("packages"):
        console.print()
        console.print(table)

    if verbose:
        for pkg in d.get("packages", []):
            for path in pkg["files"]:
                console.print(Text(f"  {pkg['id']}: {path}", style="buckle.path"))
        _render_meta(console, result)


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)
    if verbose:
        _render_meta(console, result)


_OP_RENDERERS: dict[str, Any] = {
    "plan": _render_plan,
    "apply": _render_apply,
}
