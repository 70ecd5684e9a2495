"""
LLM Interface for the Chat Assistant

This module composes chat prompts, optionally enriched with a statistical
summary of the measurements in a region, and forwards them to OpenAI.
"""

import os
from dataclasses import dataclass
from typing import Dict, List, Optional

import logging
from openai import OpenAI, OpenAIError

from ..database.queries import RegionSummary

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4"


class LLMConfigurationError(Exception):
    """Raised when the text generation service is not configured"""
    pass


class LLMServiceError(Exception):
    """Raised when the text generation service fails"""
    pass


@dataclass
class ChatMessage:
    role: str
    content: str


@dataclass
class RegionContext:
    """Center and half-width, in degrees, of the bounding box being discussed"""
    lat: float
    lon: float
    range_deg: float

    def describe(self) -> str:
        return (
            f"latitude {self.lat - self.range_deg:.3f} to {self.lat + self.range_deg:.3f}, "
            f"longitude {self.lon - self.range_deg:.3f} to {self.lon + self.range_deg:.3f}"
        )


SYSTEM_PROMPT = """You are OceanViz Assistant, an expert oceanographic data analyst.
You answer questions about ARGO float measurements stored in a table with the columns
temperature (°C), salinity (PSU), pressure (dbar), depth (m), oxygen (micromol/kg),
nitrate (micromol/kg), latitude, longitude and observation time.
Keep answers concise, use appropriate oceanographic terminology and say so when the
available data cannot answer a question."""


def build_messages(messages: List[ChatMessage],
                   region: Optional[RegionContext] = None,
                   summary: Optional[RegionSummary] = None) -> List[Dict[str, str]]:
    """Compose the message list sent to the model"""
    system_prompt = SYSTEM_PROMPT
    if region is not None:
        system_prompt += f"\n\nThe user is looking at the region {region.describe()}."
    if summary is not None:
        system_prompt += f"\n\nSUMMARY OF MEASUREMENTS IN THIS REGION:\n{summary.to_text()}"

    return [{"role": "system", "content": system_prompt}] + [
        {"role": m.role, "content": m.content} for m in messages
    ]


class LLMInterface:
    """Interface for Language Model operations"""

    def __init__(self, model: Optional[str] = None):
        self.model = model or os.getenv("OPENAI_MODEL", DEFAULT_MODEL)

        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise LLMConfigurationError("OPENAI_API_KEY environment variable is required")
        self.client = OpenAI(api_key=api_key)

        logger.info(f"Initialized LLM interface: openai - {self.model}")

    def generate_reply(self, messages: List[Dict[str, str]]) -> str:
        """Send a composed message list and return the model's text"""
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=0.3,
                max_tokens=800
            )
        except OpenAIError as e:
            logger.error(f"Error generating response: {e}")
            raise LLMServiceError(f"Text generation failed: {str(e)}") from e

        return response.choices[0].message.content or ""
