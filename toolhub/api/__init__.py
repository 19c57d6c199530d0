"""Adapter package for HTTP and CLI interfaces.

Architectural role:
- Defines the external interaction boundary over the generation clients.
- Performs transport-level validation and response shaping.
- Maps classified errors to user-safe messages.

Scope:
- No network calls to generation providers are implemented in this package
  root; they live in `toolhub.llm` and `toolhub.image`.
"""
