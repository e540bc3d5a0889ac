"""Image handling package.

Scope:
    - `codec`: lossless base64 transcoding of uploaded images and data-URI
      envelope handling.
    - `client`: Imagen HTTP transport.
    - `service`: fixed-configuration text-to-image request (`ImageSynthesizer`).

Non-goals:
    - No image editing, resizing or format conversion.
    - No persistence of uploaded or generated images.
"""
