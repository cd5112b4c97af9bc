# Stock Batch Metadata
# Copyright (C) 2025 Riiicil
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.

# stockbatch/api/gemini_api.py
from __future__ import annotations
import json
import requests
from stockbatch.utils.errors import GenerationError
from stockbatch.utils.logging import log_message
try:
    from google import genai
    from google.genai import types
    GENAI_SDK_AVAILABLE = True
except ImportError:
    GENAI_SDK_AVAILABLE = False

GEMINI_MODELS = [
    "gemini-2.0-flash",
    "gemini-2.0-flash-lite",
    "gemini-2.5-flash",
    "gemini-2.5-flash-lite",
    "gemini-2.5-pro"
]
DEFAULT_MODEL = "gemini-2.5-flash"
GEMINI_REST_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
API_TIMEOUT = 60
API_MAX_RETRIES = 1


def _key_hint(api_key: str) -> str:
    return f"...{api_key[-5:]}" if api_key else "<none>"


def get_sdk_client(api_key: str):
    if not GENAI_SDK_AVAILABLE:
        return None
    try:
        return genai.Client(api_key=api_key)
    except Exception as e:
        log_message(f"Failed to create SDK client: {e}", "error")
        return None


def _create_session() -> requests.Session:
    session = requests.Session()
    session.mount('https://', requests.adapters.HTTPAdapter(
        max_retries=requests.adapters.Retry(total=API_MAX_RETRIES, backoff_factor=0.3, status_forcelist=[500, 502, 503, 504], allowed_methods=["POST"], respect_retry_after_header=True)
    ))
    return session


def extract_response_text(response_data: dict) -> str:
    """Join the non-thought text parts of the first candidate.

    Raises GenerationError when the prompt was blocked or nothing usable came back.
    """
    candidates = response_data.get("candidates") or []
    if not candidates:
        block_reason = (response_data.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            raise GenerationError(f"Content blocked by Gemini. Reason: {block_reason}", {"block_reason": block_reason})
        raise GenerationError("Gemini returned no candidates.")
    candidate = candidates[0]
    parts = (candidate.get("content") or {}).get("parts") or []
    texts = [part.get("text", "") for part in parts if isinstance(part, dict) and not part.get("thought")]
    generated_text = "".join(texts).strip()
    if not generated_text:
        finish_reason = candidate.get("finishReason", "UNKNOWN")
        raise GenerationError(f"Gemini returned an empty response (finish reason: {finish_reason}).",
                              {"finish_reason": finish_reason})
    return generated_text


def _generate_via_sdk(prompt_text: str, api_key: str, model: str) -> str:
    client = get_sdk_client(api_key)
    if client is None:
        raise GenerationError("Gemini SDK client could not be created.")
    log_message(f"Sending master prompt to {model} via SDK (API Key: {_key_hint(api_key)})")
    config = types.GenerateContentConfig(temperature=0.2, top_p=0.8, top_k=40)
    response = client.models.generate_content(
        model=model,
        contents=[types.Content(role="user", parts=[types.Part.from_text(text=prompt_text)])],
        config=config
    )
    response_data = {"candidates": []}
    for candidate in response.candidates or []:
        parts = []
        if candidate.content and candidate.content.parts:
            for part in candidate.content.parts:
                if getattr(part, 'text', None):
                    parts.append({"text": part.text, "thought": bool(getattr(part, 'thought', False))})
        response_data["candidates"].append({
            "content": {"role": "model", "parts": parts},
            "finishReason": str(candidate.finish_reason or "STOP"),
        })
    feedback = getattr(response, 'prompt_feedback', None)
    if feedback is not None and getattr(feedback, 'block_reason', None):
        response_data["promptFeedback"] = {"blockReason": str(feedback.block_reason)}
    return extract_response_text(response_data)


def _generate_via_rest(prompt_text: str, api_key: str, model: str, session=None) -> str:
    log_message(f"Sending master prompt to {model} via REST API (API Key: {_key_hint(api_key)})")
    payload = {
        "contents": [{"role": "user", "parts": [{"text": prompt_text}]}],
        "generationConfig": {"temperature": 0.2, "topP": 0.8, "topK": 40}
    }
    headers = {"Content-Type": "application/json"}
    api_url = f"{GEMINI_REST_ENDPOINT.format(model=model)}?key={api_key}"
    session = session or _create_session()
    try:
        response = session.post(api_url, headers=headers, json=payload, timeout=API_TIMEOUT)
    except requests.exceptions.RequestException as e:
        raise GenerationError(f"Request to Gemini failed ({type(e).__name__}): {e}") from e

    try:
        response_data = response.json()
    except (json.JSONDecodeError, ValueError) as e:
        raise GenerationError(
            f"Gemini response is not valid JSON (Status: {response.status_code}): {response.text[:200]}"
        ) from e

    if response.status_code != 200:
        error_details = response_data.get("error", {}) if isinstance(response_data, dict) else {}
        api_error_message = error_details.get("message", "No specific error message from API.")
        log_message(f"API Error [{model}]: HTTP {response.status_code} - {api_error_message}", "error")
        raise GenerationError(api_error_message, {"status_code": response.status_code,
                                                  "code": error_details.get("code")})
    return extract_response_text(response_data)


def generate_text(prompt_text: str, api_key: str, model: str = DEFAULT_MODEL, session=None) -> str:
    """Send one prompt to Gemini and return the generated text."""
    if not api_key:
        raise GenerationError("No Gemini API key supplied.")
    model = model or DEFAULT_MODEL
    if model not in GEMINI_MODELS:
        log_message(f"Model {model} is not in the known model list, sending anyway", "warning")

    if GENAI_SDK_AVAILABLE and session is None:
        try:
            text = _generate_via_sdk(prompt_text, api_key, model)
            log_message(f"Received {len(text)} characters from {model}", "success")
            return text
        except GenerationError:
            raise
        except Exception as e:
            log_message(f"SDK failed for {model}: {e}. Falling back to REST API once.", "warning")

    text = _generate_via_rest(prompt_text, api_key, model, session=session)
    log_message(f"Received {len(text)} characters from {model}", "success")
    return text


def make_generator(api_key: str, session=None):
    """Bind an API key into the generate(prompt_text, model_id) callable the pipeline uses."""
    def generate(prompt_text, model_id):
        return generate_text(prompt_text, api_key, model_id, session=session)
    return generate
