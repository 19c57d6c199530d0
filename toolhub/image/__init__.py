"""Image generation adapter package.

Scope:
    Provides the cascading image/video client and a small facade used by the
    HTTP API and CLI adapters.

Non-goals:
    - No caching or de-duplication of identical requests.
    - No streaming or progressive delivery; one whole response per attempt.
    - No file persistence of generated media.
"""
