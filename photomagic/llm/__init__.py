"""Vision-model access package.

Architectural role:
    Provides configuration, request-payload construction, and transport for the
    description stage of the generation pipeline.

Module split:
    - `provider_config`: model constants and credential lookup.
    - `service`: image + instruction to payload adapter (`VisionDescriber`).
    - `client`: Gemini HTTP transport.
"""
