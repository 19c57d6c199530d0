"""Shared contracts for the generation clients.

Architectural role:
    Holds the types that sit between the network clients (`toolhub.llm`,
    `toolhub.image`) and the adapters (`toolhub.api`).

Composition:
    - `errors`: classified failure taxonomy with user-safe messages.
    - `outcomes`: tagged per-attempt outcomes and the adapter result envelope.
    - `history`: usage-history collaborator contract.

Determinism and side effects:
    Package import is deterministic and side-effect free.
"""
