"""HTTP client for the X v2 content endpoints."""

from __future__ import annotations

import time
from typing import Any
from urllib.parse import quote

import httpx

from post_purge.domain.entities import Post, PostPage
from post_purge.domain.errors import (
    UpstreamError,
    UpstreamFatalError,
    UpstreamNotFoundError,
    UpstreamRateLimitedError,
    UpstreamTransientError,
)
from post_purge.domain.ports import ContentApiClient

_MIN_PAGE_SIZE = 5
_MAX_PAGE_SIZE = 100


class XApiClient(ContentApiClient):
    """Wrapper around the X v2 user timeline and post endpoints."""

    def __init__(
        self,
        base_url: str = "https://api.x.com",
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = self._normalize_base_url(base_url)
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    async def get_me(self, access_token: str) -> dict[str, Any]:
        """Call `GET /2/users/me` and return the `data` object."""

        payload = await self._request("GET", "/2/users/me", access_token)
        data = payload.get("data")
        if not isinstance(data, dict) or not isinstance(data.get("id"), str):
            raise UpstreamFatalError("GET /2/users/me returned no user id.")
        return data

    async def list_posts(
        self,
        access_token: str,
        user_id: str,
        pagination_token: str | None = None,
        max_results: int = _MAX_PAGE_SIZE,
    ) -> PostPage:
        """Call `GET /2/users/{id}/tweets` for one page."""

        params: dict[str, str] = {
            "max_results": str(max(_MIN_PAGE_SIZE, min(max_results, _MAX_PAGE_SIZE)))
        }
        if pagination_token:
            params["pagination_token"] = pagination_token
        user_id_path = quote(user_id, safe="")
        payload = await self._request(
            "GET",
            f"/2/users/{user_id_path}/tweets",
            access_token,
            params=params,
        )

        raw_posts = payload.get("data") or []
        if not isinstance(raw_posts, list):
            raise UpstreamFatalError("Timeline response 'data' is not a list.")
        posts = [
            Post(post_id=str(item["id"]), text=str(item.get("text", "")))
            for item in raw_posts
            if isinstance(item, dict) and item.get("id") is not None
        ]
        meta = payload.get("meta")
        next_token = meta.get("next_token") if isinstance(meta, dict) else None
        return PostPage(posts=posts, next_token=next_token or None)

    async def delete_post(self, access_token: str, post_id: str) -> None:
        """Call `DELETE /2/tweets/{id}`."""

        post_id_path = quote(post_id, safe="")
        payload = await self._request("DELETE", f"/2/tweets/{post_id_path}", access_token)
        data = payload.get("data")
        if isinstance(data, dict) and data.get("deleted") is False:
            raise UpstreamTransientError(f"Post '{post_id}' was not deleted.")

    async def create_post(self, access_token: str, text: str) -> Post:
        """Call `POST /2/tweets`."""

        payload = await self._request("POST", "/2/tweets", access_token, json={"text": text})
        data = payload.get("data")
        if not isinstance(data, dict) or data.get("id") is None:
            raise UpstreamFatalError("POST /2/tweets returned no post id.")
        return Post(post_id=str(data["id"]), text=str(data.get("text", text)))

    async def _request(
        self,
        method: str,
        path: str,
        access_token: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_seconds,
                transport=self._transport,
            ) as http_client:
                response = await http_client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.TimeoutException as exc:
            raise UpstreamTransientError(f"{method} {url} timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise UpstreamTransientError(f"{method} {url} failed: {exc}") from exc

        self._ensure_success(response)
        if not response.content:
            return {}
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamFatalError(f"{method} {url} returned invalid JSON.") from exc
        if not isinstance(payload, dict):
            raise UpstreamFatalError(f"{method} {url} returned a non-object payload.")
        return payload

    def _ensure_success(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        message = (
            f"{response.request.method} {response.request.url} failed: "
            f"{response.status_code} {self._detail_from_response(response)}"
        )
        raise self._error_for_status(response, message)

    def _error_for_status(self, response: httpx.Response, message: str) -> UpstreamError:
        status_code = response.status_code
        if status_code == 429:
            return UpstreamRateLimitedError(
                message,
                retry_after_seconds=self._retry_after_seconds(response),
            )
        if status_code == 404:
            return UpstreamNotFoundError(message)
        if status_code in {408, 409} or status_code >= 500:
            return UpstreamTransientError(message)
        return UpstreamFatalError(message)

    def _retry_after_seconds(self, response: httpx.Response) -> float | None:
        retry_after = response.headers.get("retry-after")
        if retry_after is not None:
            try:
                return max(float(retry_after), 0.0)
            except ValueError:
                pass
        reset_at = response.headers.get("x-rate-limit-reset")
        if reset_at is None:
            return None
        try:
            return max(float(reset_at) - time.time(), 0.0)
        except ValueError:
            return None

    def _detail_from_response(self, response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            text = response.text.strip()
            return text or "<no response body>"

        if isinstance(payload, dict):
            for key in ("detail", "title", "error_description", "error"):
                detail = payload.get(key)
                if isinstance(detail, str):
                    return detail
        return str(payload)

    def _normalize_base_url(self, base_url: str) -> str:
        normalized = base_url.strip().rstrip("/")
        if not normalized:
            raise ValueError("X API base URL cannot be empty.")
        return normalized


__all__ = ["XApiClient"]
