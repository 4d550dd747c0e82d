import httpx
from edulearn.config import settings


class OpenRouterClient:
    """Thin async wrapper over the OpenRouter REST API.

    Methods return the raw ``httpx.Response`` so callers can translate
    provider status codes themselves; nothing here retries.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        referer: str | None = None,
        title: str | None = None,
    ):
        self.api_key = api_key
        self.base_url = (base_url or settings.openrouter_base_url).rstrip("/")
        self.timeout = timeout or settings.llm_timeout_seconds
        self.transport = transport
        self.referer = referer
        self.title = title or settings.openrouter_app_title

    def _headers(self) -> dict:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Title": self.title,
        }
        if self.referer:
            headers["HTTP-Referer"] = self.referer
        return headers

    async def _request(self, method: str, path: str, json: dict | None = None) -> httpx.Response:
        url = f"{self.base_url}{path}"
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            return await client.request(method, url, headers=self._headers(), json=json)

    async def chat_completions(self, payload: dict) -> httpx.Response:
        return await self._request("POST", "/chat/completions", payload)

    async def key_info(self) -> httpx.Response:
        return await self._request("GET", "/auth/key")

    async def list_models(self) -> httpx.Response:
        return await self._request("GET", "/models")


def build_chat_payload(prompt: str, model: str, context: str = "", temperature: float = 0.7, max_tokens: int = 2000) -> dict:
    return {
        "model": model,
        "messages": [
            {"role": "system", "content": context or ""},
            {"role": "user", "content": prompt},
        ],
        "temperature": temperature,
        "max_tokens": max_tokens,
    }


def response_json(resp: httpx.Response) -> dict:
    try:
        data = resp.json()
    except ValueError:
        return {"error": {"message": resp.text}}
    return data if isinstance(data, dict) else {"data": data}


def provider_error_message(data: dict) -> str:
    err = data.get("error")
    if isinstance(err, dict):
        return str(err.get("message") or "")
    return str(err or "")
