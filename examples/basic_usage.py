#!/usr/bin/env python3
"""
Basic Usage Example

Drives the sandbox and the tool dispatcher directly, without a model
endpoint: shows results, captured logs, contained errors and timeouts.
"""

import asyncio
import json

from sandboxed_agent import (
    BuiltinTools,
    SandboxConfig,
    SandboxExecutor,
    SandboxRuntimeError,
    SandboxTimeout,
    ToolDispatcher,
    ToolSettings,
)


async def sandbox_demo(executor: SandboxExecutor) -> None:
    print("--- Sandbox: result and logs ---")
    result = await executor.run(
        "total = 0\n"
        "for i in range(5):\n"
        "    console.log('step', i)\n"
        "    total += i\n"
        "total"
    )
    print(f"logs={result.logs} result={result.result} ({result.execution_time_ms:.0f} ms)")

    print("\n--- Sandbox: runtime error ---")
    try:
        await executor.run("print('before')\nraise ValueError('boom')")
    except SandboxRuntimeError as e:
        print(f"error={e.message!r} logs={e.logs}")

    print("\n--- Sandbox: timeout ---")
    try:
        await executor.run("while True:\n    pass", timeout_ms=500)
    except SandboxTimeout as e:
        print(f"timeout: {e}")


async def dispatcher_demo(dispatcher: ToolDispatcher) -> None:
    calls = [
        ("evaluate", json.dumps({"code": "2 + 2"})),
        ("evaluate", json.dumps({"code": "1 / 0"})),
        ("search", json.dumps({"query": "python asyncio"})),  # no credentials configured
        ("proxy_call", "not json"),  # decoded as {}
        ("weather", "{}"),  # not registered
    ]

    print("\n--- Dispatcher ---")
    for name, arguments in calls:
        outcome = await dispatcher.invoke(name, arguments)
        status = "ok " if outcome.ok else "err"
        print(f"[{status}] {name}: {outcome.to_content()}")


async def main():
    executor = SandboxExecutor(SandboxConfig(timeout_ms=5000))
    await sandbox_demo(executor)

    tools = BuiltinTools(ToolSettings(), executor)
    await dispatcher_demo(ToolDispatcher(tools.build_registry()))


if __name__ == "__main__":
    asyncio.run(main())
