"""Text generation package.

Architectural role:
    Provides configuration, the single-attempt completion client and the
    task-level helpers used by adapters to invoke text-generation backends.

Module split:
    - `provider_config`: environment-driven endpoint, model and key settings
      for both text and image clients.
    - `client`: async HTTP transport with offline-aware error classification.
    - `service`: prompt construction and output post-processing per task.
"""
