"""Boundary adapters.

- `http_api`: FastAPI application factory.
- `cli`: interactive terminal loop, in-process or against a running server.
- `main`: runtime assembly and the uvicorn entrypoint.

Adapters only translate transport messages into `Input` objects and render the
single terminal response; all reasoning happens in the pipeline.
"""
