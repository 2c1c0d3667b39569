"""
LLM Service
Cerebras calls used to turn free-text dosing frequency into clock times
"""

import logging
from typing import Dict, List, Optional, Any
import json
import re
import asyncio

import requests

from config import settings
from exceptions import ConfigFallbackError, TransientDependencyError
from tools.schedule_model import normalize_time


logger = logging.getLogger(__name__)


SCHEDULE_SYSTEM_PROMPT = """You are a medication scheduling assistant.
Given how often a medication is taken, suggest the clock times of its daily doses.
Use 24-hour HH:MM times spread sensibly across waking hours (07:00 - 22:00).
Return an empty list for as-needed medications."""

SCHEDULE_SCHEMA_HINT = {"times": ["08:00", "20:00"]}


class LLMService:
    """
    Thin client for the Cerebras chat completions API

    Only used while creating or editing a medication. Failures are
    reported as typed errors so callers can fall back to static rules.
    """

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.CEREBRAS_API_KEY
        self.base_url = base_url or settings.CEREBRAS_BASE_URL
        self.model_name = settings.LLM_MODEL
        self.temperature = settings.LLM_TEMPERATURE
        self.max_tokens = settings.LLM_MAX_TOKENS
        self.timeout = settings.LLM_TIMEOUT_SECONDS

        # Usage tracking
        self._total_tokens_used = 0
        self._request_count = 0

        if not self.api_key:
            logger.warning("CEREBRAS_API_KEY not configured, schedule inference disabled")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> str:
        """
        Generate a response from the LLM

        Args:
            prompt: User prompt/message
            system_prompt: System instructions
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum response tokens

        Returns:
            Generated text response

        Raises:
            ConfigFallbackError: No API key configured
            TransientDependencyError: Network failure, timeout or non-200 reply
        """
        if not self.is_configured:
            raise ConfigFallbackError("Cerebras is not configured. Set CEREBRAS_API_KEY.")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        payload = {
            "model": self.model_name,
            "messages": messages,
            "temperature": temperature if temperature is not None else self.temperature,
            "max_tokens": max_tokens if max_tokens is not None else self.max_tokens,
        }

        try:
            resp = await asyncio.get_event_loop().run_in_executor(
                None,
                lambda: requests.post(
                    f"{self.base_url}/chat/completions",
                    headers=headers,
                    json=payload,
                    timeout=self.timeout,
                ),
            )
        except requests.RequestException as e:
            logger.error("Cerebras request failed: %s", e)
            raise TransientDependencyError(f"Cerebras request failed: {e}") from e

        if resp.status_code != 200:
            logger.error("Cerebras API error %s: %s", resp.status_code, resp.text)
            raise TransientDependencyError(f"Cerebras API error: {resp.status_code}")

        try:
            data = resp.json()
            choices = data.get("choices") or []
            if not choices:
                return ""
            text = (choices[0].get("message") or {}).get("content") or ""
            usage = data.get("usage") or {}
            total_tokens = int(usage.get("total_tokens") or 0)
        except (ValueError, AttributeError, TypeError) as e:
            logger.error("Malformed Cerebras reply: %s", e)
            raise TransientDependencyError(f"Malformed Cerebras reply: {e}") from e

        self._total_tokens_used += total_tokens
        self._request_count += 1

        return text

    async def generate_json(
        self,
        prompt: str,
        schema_hint: Optional[Dict[str, Any]] = None,
        system_prompt: Optional[str] = None,
        **kwargs
    ) -> Dict[str, Any]:
        """
        Generate a JSON response from the LLM

        Args:
            prompt: User prompt
            schema_hint: Example of expected JSON structure
            system_prompt: System instructions

        Returns:
            Parsed JSON response
        """
        json_system = system_prompt or ""
        json_system += "\n\nYou must respond with valid JSON only. No additional text, no markdown code blocks, just pure JSON."

        if schema_hint:
            json_system += f"\n\nExpected JSON structure:\n{json.dumps(schema_hint, indent=2)}"

        response = await self.generate(
            prompt=prompt,
            system_prompt=json_system,
            **kwargs
        )

        return self.parse_json_response(response)

    def parse_json_response(
        self,
        response: str,
        default: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Parse JSON from LLM response, handling common issues

        Args:
            response: Raw LLM response
            default: Default value if parsing fails

        Returns:
            Parsed JSON dictionary
        """
        if default is None:
            default = {}

        if not response:
            return default

        response = response.strip()

        try:
            return json.loads(response)
        except json.JSONDecodeError:
            pass

        # Try to extract JSON from markdown code blocks
        json_patterns = [
            r'```json\s*([\s\S]*?)\s*```',
            r'```\s*([\s\S]*?)\s*```',
            r'\{[\s\S]*\}',
        ]

        for pattern in json_patterns:
            match = re.search(pattern, response)
            if match:
                try:
                    json_str = match.group(1) if '```' in pattern else match.group(0)
                    return json.loads(json_str.strip())
                except json.JSONDecodeError:
                    continue

        logger.warning(f"Failed to parse JSON from response: {response[:200]}...")
        return default

    async def infer_schedule_times(self, frequency: str) -> List[str]:
        """
        Ask the model for the daily clock times of a frequency description

        Args:
            frequency: Free text such as "twice daily" or "every 8 hours"

        Returns:
            Sorted, de-duplicated HH:MM times

        Raises:
            ConfigFallbackError: Not configured, or the reply holds no usable times
            TransientDependencyError: The API call failed
        """
        result = await self.generate_json(
            prompt=f"Medication frequency: {frequency}",
            schema_hint=SCHEDULE_SCHEMA_HINT,
            system_prompt=SCHEDULE_SYSTEM_PROMPT,
        )

        raw_times = result.get("times") if isinstance(result, dict) else None
        if not isinstance(raw_times, list):
            raise ConfigFallbackError(f"No times in model reply for '{frequency}'")

        times = set()
        for value in raw_times:
            try:
                times.add(normalize_time(str(value)))
            except ValueError:
                logger.warning(f"Ignoring invalid time '{value}' from model")

        if not times:
            raise ConfigFallbackError(f"No valid times in model reply for '{frequency}'")

        logger.info(f"Inferred times for '{frequency}': {sorted(times)}")
        return sorted(times)

    def get_usage_stats(self) -> Dict[str, Any]:
        return {
            "total_tokens": self._total_tokens_used,
            "request_count": self._request_count,
            "model": self.model_name,
        }


# Singleton instance
llm_service = LLMService()
