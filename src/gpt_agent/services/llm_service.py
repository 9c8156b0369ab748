from __future__ import annotations

import logging
import time
from typing import Callable, Sequence

import httpx
from openai import APIConnectionError, APIStatusError, OpenAI
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_incrementing

from gpt_agent.config import ModelConfig, check_model, get_model_config
from gpt_agent.models.agent_schemas import (
    ClientRequestError,
    CompletionFailure,
    CompletionResult,
    CompletionSuccess,
    TransportError,
)
from gpt_agent.models.messages import FunctionDefinition, Message, serialize_message
from gpt_agent.services.response_parser import parse_completion_response

logger = logging.getLogger(__name__)

TOTAL_ATTEMPTS = 3
RETRY_STEP_SECONDS = 1.0

# Fixed for reproducible tool use
SAMPLING_PARAMS = {
    "temperature": 0,
    "top_p": 1,
    "frequency_penalty": 0,
    "presence_penalty": 0,
}


def _create_openai_client(config: ModelConfig, http_client: httpx.Client | None = None) -> OpenAI:
    """Create an OpenAI client with SDK retries disabled; retrying is ours."""
    return OpenAI(
        api_key=config.api_key,
        base_url=config.base_url or None,
        timeout=config.timeout,
        max_retries=0,
        http_client=http_client,
    )


def _log_retry(retry_state) -> None:
    logger.warning(
        "Attempt %d failed (%s), retrying in %.0fs...",
        retry_state.attempt_number,
        retry_state.outcome.exception(),
        retry_state.next_action.sleep,
    )


class LLMService:
    """Client for the chat completion endpoint.

    ``complete`` never mutates the history it is given; it returns the new
    assistant entry (and a fresh list with it appended) for the caller to keep.
    """

    def __init__(
        self,
        config: ModelConfig | None = None,
        http_client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if config is None:
            config = get_model_config()
        self._config = config
        self.model = check_model(config.model)
        self.client = _create_openai_client(config, http_client)
        self._sleep = sleep

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(TOTAL_ATTEMPTS),
            wait=wait_incrementing(start=RETRY_STEP_SECONDS, increment=RETRY_STEP_SECONDS),
            retry=retry_if_exception_type(TransportError),
            before_sleep=_log_retry,
            sleep=self._sleep,
            reraise=True,
        )

    def build_request(
        self,
        messages: Sequence[Message],
        functions: Sequence[FunctionDefinition],
        model: str | None = None,
    ) -> dict:
        body: dict = {
            "messages": [serialize_message(m) for m in messages],
            "model": check_model(model or self.model),
            **SAMPLING_PARAMS,
        }
        if functions:
            body["functions"] = [
                FunctionDefinition.model_validate(f.model_dump()).model_dump() for f in functions
            ]
        return body

    def _send_once(self, body: dict) -> str:
        """One request attempt; faults come back as TransportError or ClientRequestError."""
        logger.info("Asking GPT...")
        try:
            raw = self.client.chat.completions.with_raw_response.create(**body)
        except APIStatusError as e:
            status = e.status_code
            text = e.response.text
            logger.warning("Completion endpoint returned %d: %s", status, text)
            if 400 <= status < 500:
                logger.error("Not a retryable error")
                raise ClientRequestError(status, text) from e
            raise TransportError(f"response not ok: {status}", status_code=status) from e
        except APIConnectionError as e:
            logger.warning("Network error talking to completion endpoint: %s", e)
            raise TransportError(f"network error: {e}") from e
        return raw.text

    def complete(
        self,
        messages: Sequence[Message],
        functions: Sequence[FunctionDefinition] = (),
        model: str | None = None,
    ) -> CompletionResult:
        body = self.build_request(messages, functions, model)
        try:
            for attempt in self._retrying():
                with attempt:
                    text = self._send_once(body)
        except TransportError:
            logger.error("Giving up after %d attempts", TOTAL_ATTEMPTS)
            raise

        outcome = parse_completion_response(text)
        if isinstance(outcome, CompletionFailure):
            logger.warning("Completion stopped at the token limit")
            return outcome
        return CompletionSuccess(new_message=outcome, messages=[*messages, outcome])
