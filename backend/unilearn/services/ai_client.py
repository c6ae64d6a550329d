"""
AI provider clients — explicitly constructed, injected into the services.

Chat completions:
  1. Oracle Generative AI Inference via OCI SDK + signed requests (~/.oci/config)
  2. Anthropic, when OCI is not configured
Embeddings:
  Oracle Generative AI embedText only. Without it the embedder falls back to
  its local vector (see services/embedding.py).

Nothing here is created at import time: main.py builds one AIProvider at
startup and request handlers reach it through unilearn.dependencies.
"""

import json
import asyncio
import logging
from pathlib import Path
from typing import Protocol

import oci
import anthropic

from unilearn.config import Settings

logger = logging.getLogger(__name__)


class ChatClient(Protocol):
    async def chat(
        self,
        system: str,
        messages: list[dict],
        max_tokens: int = 400,
        temperature: float = 0.7,
    ) -> str: ...


class EmbeddingClient(Protocol):
    async def embed(self, texts: list[str]) -> list[list[float]]: ...


# ─────────────────────────────────────────────────────────────────────────────
# Oracle GenAI — OCI signed requests
# ─────────────────────────────────────────────────────────────────────────────

class OracleGenAIClient:
    """Chat + embeddings against OCI Generative AI Inference."""

    def __init__(
        self,
        config_file: str,
        profile: str,
        model_id: str,
        compartment_id: str,
        embedding_model: str,
        base_url: str = "",
        api_format: str = "AUTO",
    ):
        self.config_file = config_file
        self.profile = profile
        self.model_id = model_id
        self.compartment_id = compartment_id
        self.embedding_model = embedding_model
        self.base_url = base_url
        self.api_format = api_format

    @property
    def name(self) -> str:
        return f"Oracle GenAI OCI-Signed ({self.model_id})"

    def _is_cohere(self) -> bool:
        forced = self.api_format.strip().upper()
        if forced == "COHERE":
            return True
        if forced == "GENERIC":
            return False
        return self.model_id.lower().startswith("cohere.")

    def build_chat_body(
        self,
        system: str,
        messages: list[dict],
        max_tokens: int,
        temperature: float,
    ) -> dict:
        """Build JSON body for POST /20231130/actions/chat."""
        serving_mode = {"servingType": "ON_DEMAND", "modelId": self.model_id}

        if self._is_cohere():
            # Cohere: single "message" string + optional history + preamble
            history = []
            for m in messages[:-1]:
                role = "USER" if m.get("role", "user") == "user" else "CHATBOT"
                history.append({"role": role, "message": m.get("content", "")})

            last_msg = messages[-1].get("content", "") if messages else ""
            chat_req: dict = {
                "apiFormat": "COHERE",
                "message": last_msg,
                "maxTokens": max_tokens,
                "temperature": temperature,
                "isStream": False,
            }
            if system:
                chat_req["preambleOverride"] = system
            if history:
                chat_req["chatHistory"] = history
        else:
            # Generic / Llama: messages array + systemMessage
            oci_msgs = []
            for m in messages:
                role = "USER" if m.get("role", "user") == "user" else "ASSISTANT"
                oci_msgs.append({
                    "role": role,
                    "content": [{"type": "TEXT", "text": m.get("content", "")}],
                })
            chat_req = {
                "apiFormat": "GENERIC",
                "messages": oci_msgs,
                "maxTokens": max_tokens,
                "temperature": temperature,
                "isStream": False,
            }
            if system:
                chat_req["systemMessage"] = system

        body: dict = {"servingMode": serving_mode, "chatRequest": chat_req}
        if self.compartment_id:
            body["compartmentId"] = self.compartment_id
        return body

    @staticmethod
    def extract_text(response_json: dict) -> str:
        """Pull plain text from an /actions/chat response."""
        chat_resp = response_json.get("chatResponse", {})
        fmt = chat_resp.get("apiFormat", "GENERIC")
        if fmt == "COHERE":
            return chat_resp.get("text", "")
        choices = chat_resp.get("choices", [])
        if not choices:
            return ""
        content = choices[0].get("message", {}).get("content", [])
        if isinstance(content, list) and content:
            return content[0].get("text", "")
        return str(content)

    def _oci_config(self) -> dict:
        cfg_file = str(Path(self.config_file).expanduser())
        return oci.config.from_file(file_location=cfg_file, profile_name=self.profile)

    def _endpoint(self, cfg: dict) -> str:
        if self.base_url:
            return self.base_url.rstrip("/")
        region = cfg.get("region", "us-chicago-1")
        return f"https://inference.generativeai.{region}.oci.oraclecloud.com"

    def _post(self, path: str, body: dict, timeout: tuple = (10.0, 300.0)) -> dict:
        """Perform a signed POST request via the OCI base client and return JSON dict.

        Args:
            timeout: (connect_timeout, read_timeout) in seconds.
        """
        cfg = self._oci_config()
        client = oci.generative_ai_inference.GenerativeAiInferenceClient(
            config=cfg,
            service_endpoint=self._endpoint(cfg),
            timeout=timeout,
        )
        response = client.base_client.call_api(
            resource_path=path,
            method="POST",
            header_params={"content-type": "application/json"},
            body=body,
            response_type="str",
        )
        text = response.data if isinstance(response.data, str) else str(response.data)
        return json.loads(text)

    async def chat(
        self,
        system: str,
        messages: list[dict],
        max_tokens: int = 400,
        temperature: float = 0.7,
    ) -> str:
        body = self.build_chat_body(system, messages, max_tokens, temperature)
        # OCI SDK already prefixes the API version path (/20231130).
        data = await asyncio.to_thread(self._post, "/actions/chat", body)
        return self.extract_text(data)

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed strings using /20231130/actions/embedText."""
        body: dict = {
            "inputs": texts,
            "servingMode": {
                "servingType": "ON_DEMAND",
                "modelId": self.embedding_model,
            },
        }
        if self.compartment_id:
            body["compartmentId"] = self.compartment_id
        data = await asyncio.to_thread(self._post, "/actions/embedText", body)
        return data.get("embeddings", [])


# ─────────────────────────────────────────────────────────────────────────────
# Anthropic — chat only
# ─────────────────────────────────────────────────────────────────────────────

class AnthropicChatClient:
    def __init__(self, api_key: str, model: str):
        self.model = model
        self._client = anthropic.AsyncAnthropic(api_key=api_key)

    @property
    def name(self) -> str:
        return f"Anthropic ({self.model})"

    async def chat(
        self,
        system: str,
        messages: list[dict],
        max_tokens: int = 400,
        temperature: float = 0.7,
    ) -> str:
        response = await self._client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system,
            messages=messages,
        )
        return response.content[0].text


# ─────────────────────────────────────────────────────────────────────────────
# Provider bundle
# ─────────────────────────────────────────────────────────────────────────────

class AIProvider:
    """The chat and embedding clients the process was configured with.

    Either client may be None; callers fall back to their local heuristics.
    """

    def __init__(
        self,
        chat_client: ChatClient | None = None,
        embedding_client: EmbeddingClient | None = None,
    ):
        self.chat_client = chat_client
        self.embedding_client = embedding_client

    def provider_name(self) -> str:
        if self.chat_client is None:
            return "none"
        return getattr(self.chat_client, "name", type(self.chat_client).__name__)

    async def health_check(self) -> dict:
        """Live connectivity test — called by /api/health/ai."""
        provider = self.provider_name()
        if self.chat_client is None:
            return {
                "provider": "none",
                "status": "unconfigured",
                "message": (
                    "Set ORACLE_GENAI_COMPARTMENT_ID (with an OCI config) or "
                    "ANTHROPIC_API_KEY in backend/.env. Local fallbacks are active."
                ),
            }

        try:
            reply = await self.chat_client.chat(
                system="You are a test assistant.",
                messages=[{"role": "user", "content": "Reply with exactly: OK"}],
                max_tokens=10,
                temperature=0.0,
            )
            return {"provider": provider, "status": "ok", "test_reply": reply.strip()}
        except Exception as e:
            return {"provider": provider, "status": "error", "error": str(e)}


def _oracle_configured(settings: Settings) -> bool:
    return bool(
        settings.OCI_CONFIG_FILE
        and settings.OCI_CONFIG_PROFILE
        and settings.ORACLE_GENAI_MODEL
        and settings.ORACLE_GENAI_COMPARTMENT_ID
    )


def build_ai_provider(settings: Settings) -> AIProvider:
    """Construct the provider bundle from settings.

    OCI is preferred for chat when configured and is the only embedding
    backend. Anthropic only serves chat, and only when OCI is absent.
    """
    if _oracle_configured(settings):
        oracle = OracleGenAIClient(
            config_file=settings.OCI_CONFIG_FILE,
            profile=settings.OCI_CONFIG_PROFILE,
            model_id=settings.ORACLE_GENAI_MODEL,
            compartment_id=settings.ORACLE_GENAI_COMPARTMENT_ID,
            embedding_model=settings.EMBEDDING_MODEL,
            base_url=settings.ORACLE_GENAI_BASE_URL,
            api_format=settings.ORACLE_GENAI_API_FORMAT,
        )
        return AIProvider(chat_client=oracle, embedding_client=oracle)

    if settings.ANTHROPIC_API_KEY:
        return AIProvider(
            chat_client=AnthropicChatClient(settings.ANTHROPIC_API_KEY, settings.ANTHROPIC_MODEL),
        )

    return AIProvider()
