"""LLM access package.

Architectural role:
    Provides provider configuration, request-payload construction, and transport
    adapters used by the router, the context stage, and route handlers.

Module split:
    - `provider_config`: environment-driven provider and model configuration.
    - `service`: `CompletionService` protocol and the default `LLMService`.
    - `client`: provider-specific HTTP transport and response parsing.
    - `images`: image download and base64 encoding for multimodal prompts.
"""
