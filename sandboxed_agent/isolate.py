"""
Isolate entry point - runs inside the child process spawned by SandboxExecutor

Protocol over the pipe:
    in:  {"code": str}
    out: {"logs": [...], "result": value}   (result omitted when there is none)
         {"logs": [...], "error": str}

Containment, outermost first:
1. A fresh process per request (see sandbox.py)
2. An audit hook, installed after the request is received, that rejects
   file, network, process and import events for the rest of the process
   lifetime
3. A static check that rejects dunder and frame/code attributes, which are
   the usual ways back to the real builtins
4. A restricted builtins table with a `console` object; `print` is routed to
   `console.log`. There is no `open` and no `__import__`.
"""

import ast
import builtins
import json
import math
import sys
from typing import Any, Callable

from .exceptions import SandboxViolation

SAFE_BUILTINS = (
    "abs", "all", "any", "ascii", "bin", "bool", "bytes", "callable", "chr",
    "complex", "dict", "divmod", "enumerate", "filter", "float", "format",
    "frozenset", "hash", "hex", "int", "isinstance", "issubclass", "iter",
    "len", "list", "map", "max", "min", "next", "object", "oct", "ord", "pow",
    "range", "repr", "reversed", "round", "set", "slice", "sorted", "str",
    "sum", "tuple", "zip", "__build_class__",
    "ArithmeticError", "AssertionError", "AttributeError", "Exception",
    "IndexError", "KeyError", "LookupError", "NameError", "NotImplementedError",
    "OverflowError", "RecursionError", "RuntimeError", "StopIteration",
    "TypeError", "ValueError", "ZeroDivisionError",
)

# Dunders user code may still spell out
ALLOWED_DUNDERS = frozenset({"__init__", "__name__"})

# Attributes that reach frames, code objects or foreign globals
BLOCKED_ATTRIBUTES = frozenset({
    "gi_frame", "gi_code", "cr_frame", "cr_code", "ag_frame", "ag_code",
    "f_back", "f_globals", "f_locals", "f_builtins", "f_code",
    "tb_frame", "tb_next", "func_globals", "cell_contents",
})

BLOCKED_AUDIT_EVENTS = frozenset({"open", "import"})
BLOCKED_AUDIT_PREFIXES = (
    "socket.", "subprocess.", "os.", "shutil.", "ctypes.", "pty.", "mmap.",
    "urllib.", "http.", "ftplib.", "smtplib.", "webbrowser.", "sqlite3.",
    "glob.", "tempfile.", "_winapi.", "winreg.",
)

SANDBOX_FILENAME = "<sandbox>"


class SandboxConsole:
    """Restricted logging capability exposed to user code"""

    def __init__(self, max_lines: int = 1000):
        self.logs: list[str] = []
        self.max_lines = max_lines

    def _write(self, prefix: str, args: tuple) -> None:
        if len(self.logs) < self.max_lines:
            self.logs.append(prefix + " ".join(str(a) for a in args))

    def log(self, *args) -> None:
        self._write("", args)

    info = log

    def warn(self, *args) -> None:
        self._write("[warn] ", args)

    def error(self, *args) -> None:
        self._write("[error] ", args)


def build_globals(console: SandboxConsole) -> dict:
    safe = {name: getattr(builtins, name) for name in SAFE_BUILTINS}
    safe["print"] = console.log
    return {
        "__builtins__": safe,
        "__name__": "__sandbox__",
        "console": console,
        "math": math,
    }


def _is_forbidden(name: str) -> bool:
    if name in BLOCKED_ATTRIBUTES:
        return True
    return name.startswith("__") and name not in ALLOWED_DUNDERS


def check_code(tree: ast.AST) -> None:
    """Raise SandboxViolation for attribute or name access that escapes the sandbox"""
    for node in ast.walk(tree):
        if isinstance(node, ast.Attribute) and _is_forbidden(node.attr):
            raise SandboxViolation(f"access to attribute '{node.attr}' is not allowed (line {node.lineno})")
        if isinstance(node, ast.Name) and node.id.startswith("__") and node.id not in ALLOWED_DUNDERS:
            raise SandboxViolation(f"access to name '{node.id}' is not allowed (line {node.lineno})")


def evaluate(code: str, exec_globals: dict) -> Any:
    """Run `code`; the value of a trailing expression statement is the result"""
    tree = ast.parse(code, SANDBOX_FILENAME, "exec")
    check_code(tree)

    tail = None
    if tree.body and isinstance(tree.body[-1], ast.Expr):
        tail = ast.Expression(tree.body.pop().value)

    exec(compile(tree, SANDBOX_FILENAME, "exec"), exec_globals)
    if tail is None:
        return None
    return eval(compile(tail, SANDBOX_FILENAME, "eval"), exec_globals)


def to_json_safe(value: Any) -> Any:
    try:
        json.dumps(value, allow_nan=False)
    except (TypeError, ValueError):
        return repr(value)
    return value


def make_audit_guard(
    events: frozenset = BLOCKED_AUDIT_EVENTS,
    prefixes: tuple = BLOCKED_AUDIT_PREFIXES
) -> Callable[[str, tuple], None]:
    def guard(event: str, args: tuple) -> None:
        if event in events or event.startswith(prefixes):
            raise PermissionError(f"{event} is not allowed in the sandbox")

    return guard


def install_audit_guard() -> None:
    """Audit hooks cannot be removed; only call this in a throwaway process"""
    sys.addaudithook(make_audit_guard())


def limit_memory(memory_limit_mb: int | None) -> None:
    if not memory_limit_mb or sys.platform == "win32":
        return
    import resource
    limit = memory_limit_mb * 1024 * 1024
    resource.setrlimit(resource.RLIMIT_AS, (limit, limit))


def handle_request(request: Any, max_log_lines: int = 1000) -> dict[str, Any]:
    """Evaluate one request and build the response"""
    code = request.get("code", "") if isinstance(request, dict) else ""

    console = SandboxConsole(max_log_lines)
    try:
        result = evaluate(code if isinstance(code, str) else str(code), build_globals(console))
    except Exception as e:
        return {"logs": console.logs, "error": f"{type(e).__name__}: {e}"}

    response: dict[str, Any] = {"logs": console.logs}
    if result is not None:
        response["result"] = to_json_safe(result)
    return response


def isolate_main(conn, memory_limit_mb: int | None = None, max_log_lines: int = 1000) -> None:
    """Serve exactly one request, then exit"""
    try:
        limit_memory(memory_limit_mb)
        request = conn.recv()
        install_audit_guard()
        conn.send(handle_request(request, max_log_lines))
    finally:
        conn.close()
