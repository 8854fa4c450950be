"""Wrapper de httpx para diagnósticos.

Por qué un wrapper:
- Estandariza timeouts y headers de las llamadas fuera del SDK de generación.
- Facilita testeo: se puede sustituir por un cliente con `httpx.MockTransport`.
"""

from __future__ import annotations

import httpx

from core.config import AppSettings


def build_async_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` con defaults seguros."""

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )


async def probe_provider(
    settings: AppSettings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[bool, str]:
    """GET `{base_url}/models` para comprobar conectividad y credenciales.

    Nunca lanza: devuelve (ok, detalle) para la tabla del doctor.
    """

    headers: dict[str, str] = {}
    if settings.ai_api_key:
        headers["Authorization"] = f"Bearer {settings.ai_api_key}"

    url = settings.ai_base_url.rstrip("/") + "/models"
    try:
        async with build_async_client(settings, extra_headers=headers, transport=transport) as client:
            response = await client.get(url)
    except httpx.HTTPError as exc:
        return False, f"{type(exc).__name__}: {exc}"

    if response.status_code == 401:
        return False, "HTTP 401 (check CLARA_AI_API_KEY)"
    return response.is_success, f"HTTP {response.status_code}"
