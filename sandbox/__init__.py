"""
Sandbox Module

Isolated execution environment for patched programs.

This module provides:
- Subprocess-based code execution
- Wall-clock timeout enforcement
- Memory and CPU limits (platform-dependent)
- Import allowlisting and a reduced builtins table
- Default capabilities (output channel, timers, binary buffer, process info)

WARNING: This sandbox is NOT cryptographically secure. It provides best-effort
isolation, not a security boundary against a determined attacker.
"""

__version__ = "0.1.0"
