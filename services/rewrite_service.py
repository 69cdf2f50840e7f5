import json
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Optional, Tuple

import requests
from pydantic import ValidationError

from config.settings import Settings, config
from models.schemas import RewriteRequest, RewriteResult
from services.errors import InvalidInput, MalformedResponse, MissingCredential, ProviderError, RewriteTimeout

logger = logging.getLogger(__name__)

RAW_PREFIX_LENGTH = 300
CHUNK_SIZE = 1024

# Requests run here so the caller can stop waiting at the deadline
_executor = ThreadPoolExecutor(max_workers=8, thread_name_prefix="rewrite")

REWRITE_PROMPT = """Rewrite the message below for ADHD-friendly clarity and neurotypical readability.
Do not change meaning or facts.
Return ONLY the rewritten message.

Message:
{original_text}"""

def extract_text(data) -> Optional[str]:
    """Join the text of every ``text`` content block of a Messages API response.

    Returns None when the response carries no usable text.
    """
    if not isinstance(data, dict) or not isinstance(data.get("content"), list):
        return None
    texts = [
        block["text"]
        for block in data["content"]
        if isinstance(block, dict) and block.get("type") == "text" and isinstance(block.get("text"), str)
    ]
    return "\n".join(texts).strip() if texts else None

def extract_error_message(data, raw: str, status: int) -> str:
    message = None
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict):
            message = error.get("message")
        if not message:
            message = data.get("message")
    return message or raw[:RAW_PREFIX_LENGTH] or f"HTTP {status}"

class RewriteClient:
    def __init__(self, settings: Settings = config):
        self.api_key = settings.ANTHROPIC_API_KEY
        self.model = settings.ANTHROPIC_MODEL
        self.api_version = settings.ANTHROPIC_VERSION
        self.url = settings.REWRITE_API_URL
        self.timeout = settings.REWRITE_TIMEOUT_SECONDS
        self.max_tokens = settings.REWRITE_MAX_TOKENS

    def build_payload(self, original_text: str) -> dict:
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [
                {"role": "user", "content": REWRITE_PROMPT.format(original_text=original_text)}
            ],
        }

    def _post(self, payload: dict, headers: dict, deadline: float, abandoned: threading.Event) -> Tuple[int, str]:
        """Send the request and read the whole body, giving up at ``deadline``."""
        response = requests.post(self.url, json=payload, headers=headers, timeout=self.timeout, stream=True)
        try:
            chunks = []
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if abandoned.is_set() or time.monotonic() > deadline:
                    raise RewriteTimeout(f"Rewrite API did not answer within {self.timeout:g}s")
                chunks.append(chunk)
            return response.status_code, b"".join(chunks).decode(response.encoding or "utf-8", errors="replace")
        finally:
            response.close()

    def rewrite(self, original_text: str) -> RewriteResult:
        try:
            request = RewriteRequest(original_text=original_text)
        except ValidationError as e:
            raise InvalidInput("Missing text to rewrite") from e
        if not self.api_key:
            raise MissingCredential("Missing ANTHROPIC_API_KEY")

        headers = {
            "content-type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
        }
        logger.info("Requesting rewrite from %s (model=%s, %d chars)", self.url, self.model, len(request.original_text))
        deadline = time.monotonic() + self.timeout
        abandoned = threading.Event()
        future = _executor.submit(self._post, self.build_payload(request.original_text), headers, deadline, abandoned)
        try:
            status, raw = future.result(timeout=max(deadline - time.monotonic(), 0))
        except (FutureTimeoutError, requests.Timeout) as e:
            abandoned.set()
            future.cancel()
            raise RewriteTimeout(f"Rewrite API did not answer within {self.timeout:g}s") from e

        try:
            data = json.loads(raw)
        except ValueError:
            data = None

        if not 200 <= status < 300:
            message = extract_error_message(data, raw, status)
            logger.warning("Rewrite API returned %s: %s", status, message)
            raise ProviderError(status, message)

        rewritten = extract_text(data)
        if not rewritten:
            raise MalformedResponse(raw[:RAW_PREFIX_LENGTH])

        return RewriteResult(rewritten_text=rewritten)

def rewrite(original_text: str, settings: Optional[Settings] = None) -> RewriteResult:
    return RewriteClient(settings or config).rewrite(original_text)
