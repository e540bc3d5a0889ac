"""PhotoMagic API adapter package.

Architectural role:
- Defines the HTTP boundary used by the presentation layer.
- Performs upload validation and response shaping.
- Delegates all pipeline work to `photomagic.core.engine.PipelineSession`.
"""
