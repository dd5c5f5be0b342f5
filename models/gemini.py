# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

import time
import logging
from google import genai
from google.genai import types
from models import api_config
from typing import Iterator, List, Type, TypeVar

logger = logging.getLogger(__name__)

API_KEY_LOGGING_MESSAGE = "Ran with user-specified API key"
QUERY_RESPONSE_MAX_OUTPUT_TOKENS = 4000
CHAT_MAX_OUTPUT_TOKENS = 250

T = TypeVar("T")


class GeminiInvalidResponseException(Exception):
    pass


def _make_client(api_key: str | None) -> genai.Client:
    if not api_key:
        api_key = api_config.DEFAULT_API_KEY
    else:
        logger.info(API_KEY_LOGGING_MESSAGE)
    return genai.Client(api_key=api_key)


def _truncate(text: str, limit: int = 200) -> str:
    return (text[:limit] + "...") if len(text) > limit else text


def call_predict(
    query: str,
    model: str | None = None,
    api_key: str | None = None,
    temperature: float = 0,
    max_output_tokens: int = QUERY_RESPONSE_MAX_OUTPUT_TOKENS,
) -> str:
    client = _make_client(api_key)

    response = client.models.generate_content(
        model=model or api_config.DEFAULT_MODEL,
        contents=query,
        config=types.GenerateContentConfig(
            temperature=temperature, max_output_tokens=max_output_tokens
        ),
    )
    if not response.text:
        raise GeminiInvalidResponseException()
    return response.text


def call_predict_with_schema(
    query: str,
    response_schema: Type[T],
    model: str | None = None,
    api_key: str | None = None,
    temperature: float = 0,
) -> T | List[T] | None:
    """Calls Gemini with a response schema for structured output."""
    client = _make_client(api_key)
    start_time = time.time()
    logger.info("Calling Gemini with schema, prompt: '%s'", _truncate(query))
    try:
        response = client.models.generate_content(
            model=model or api_config.DEFAULT_MODEL,
            contents=query,
            config={
                "response_mime_type": "application/json",
                "response_schema": response_schema,
                "temperature": temperature,
            },
        )
        logger.info("Gemini with schema call took: %.2fs", time.time() - start_time)
        if not response.parsed:
            raise GeminiInvalidResponseException()
        return response.parsed
    except (GeminiInvalidResponseException, ValueError) as e:
        logger.error("Unusable structured response from Gemini: %s", e)
        return None


def stream_predict(
    messages: List[dict],
    system_instruction: str,
    model: str | None = None,
    api_key: str | None = None,
    temperature: float = 0.1,
) -> Iterator[str]:
    """
    Streams a chat completion.

    Args:
        messages (List[dict]): Conversation turns as ``{"role", "content"}``
            dicts, with role ``user`` or ``assistant``.
        system_instruction (str): The system prompt for the conversation.
        model (str): The model to call with.
        api_key (str): Optional per-user key.

    Yields:
        str: Text chunks as they arrive.
    """
    client = _make_client(api_key)
    contents = [
        types.Content(
            role="model" if message["role"] == "assistant" else "user",
            parts=[types.Part(text=message["content"])],
        )
        for message in messages
    ]
    stream = client.models.generate_content_stream(
        model=model or api_config.DEFAULT_MODEL,
        contents=contents,
        config=types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=temperature,
            max_output_tokens=CHAT_MAX_OUTPUT_TOKENS,
        ),
    )
    chunk_count = 0
    for chunk in stream:
        if chunk.text:
            chunk_count += 1
            yield chunk.text
    logger.info("Stream complete. Total chunks: %d", chunk_count)
