"""Agent package: persona data, route registry, and the agent object.

Module split:
    - `character`: persona dataclasses and JSON loading.
    - `registry`: per-agent route table with duplicate detection and sealing.
    - `base_agent`: `BaseAgent`, persona rendering and route registration.
    - `defaults`: example character used by the server entrypoint.
"""
