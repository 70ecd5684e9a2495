"""
Chat assistant package for the OceanViz ARGO Store

This package composes region-aware prompts and forwards them to a large
language model.
"""

from .llm_interface import (
    LLMInterface,
    LLMConfigurationError,
    LLMServiceError,
    ChatMessage,
    RegionContext,
    build_messages
)

__all__ = [
    'LLMInterface',
    'LLMConfigurationError',
    'LLMServiceError',
    'ChatMessage',
    'RegionContext',
    'build_messages'
]
