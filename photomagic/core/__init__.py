"""Core orchestration package.

Architectural role:
    Exposes the session state machine that sits between the HTTP adapter and
    the lower-level codec, prompting and model clients.

Composition:
    - `engine`: `PipelineSession` and the default session factory.
    - `session_types`: state union and read-only snapshot.
    - `errors`: error taxonomy and public-message derivation.
"""
