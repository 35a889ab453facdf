"""店铺目录服务的 HTTP 客户端。

按 REST 约定访问目录服务（JSON，可选 Bearer 令牌）：

- GET  /shops/{id}            -> 店铺 JSON，404 表示不存在
- PUT  /shops/{id}            -> 新建或覆盖结构化字段
- POST /shops/similar         -> {"results": [{"shop_id", "score"}, ...]}
- POST /shops/{id}/usage      -> 累加使用量
- GET  /shops/{id}/usage      -> {"count": n}
- PUT  /shops/{id}/embedding  -> 保存原始文本与向量

检索算法与持久化都在服务端，这里只负责协议转换与错误包装。
"""

from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import httpx

from shop_assistant.domain.exceptions import BusinessError
from shop_assistant.domain.shop import ShopRecord, SimilarityResult


class HttpShopDirectory:
    def __init__(self, settings):
        self._settings = settings

    async def get_shop(self, shop_id: str) -> Optional[ShopRecord]:
        resp = await self._request("GET", f"/shops/{quote(shop_id, safe='')}", allow_404=True)
        if resp is None:
            return None
        return self._parse_shop(resp.json())

    async def find_similar(
        self, vector: Sequence[float], top_n: int, threshold: float
    ) -> List[SimilarityResult]:
        resp = await self._request(
            "POST",
            "/shops/similar",
            json={"vector": list(vector), "top_n": top_n, "threshold": threshold},
        )
        results: List[SimilarityResult] = []
        for item in resp.json().get("results") or []:
            results.append(SimilarityResult(shop_id=str(item["shop_id"]), score=float(item["score"])))
        return results

    async def record_usage(self, shop_id: str, count: int) -> None:
        await self._request("POST", f"/shops/{quote(shop_id, safe='')}/usage", json={"count": count})

    async def save_shop(self, shop: ShopRecord) -> None:
        await self._request(
            "PUT",
            f"/shops/{quote(shop.id, safe='')}",
            json={
                "id": shop.id,
                "name": shop.name,
                "hours": shop.hours,
                "services": shop.services,
                "pricing": shop.pricing,
                "parking": shop.parking,
                "payments": shop.payments,
                "notes": shop.notes,
            },
        )

    async def get_usage(self, shop_id: str) -> int:
        resp = await self._request("GET", f"/shops/{quote(shop_id, safe='')}/usage")
        return int(resp.json().get("count") or 0)

    async def store_embedding(self, shop_id: str, raw_text: str, embedding: Sequence[float]) -> None:
        await self._request(
            "PUT",
            f"/shops/{quote(shop_id, safe='')}/embedding",
            json={"raw_text": raw_text, "embedding": list(embedding)},
        )

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        allow_404: bool = False,
    ) -> Optional[httpx.Response]:
        base = self._settings.directory_base_url.rstrip("/")
        headers = {"Content-Type": "application/json"}
        token = getattr(self._settings, "directory_api_key", None)
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            async with httpx.AsyncClient(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = await client.request(method, f"{base}{path}", json=json, headers=headers)
        except httpx.RequestError as e:
            raise BusinessError(code="DIRECTORY_UNAVAILABLE", message=str(e), http_status=503)
        if allow_404 and resp.status_code == 404:
            return None
        if resp.status_code >= 400:
            raise BusinessError(
                code="DIRECTORY_ERROR",
                message=resp.text,
                http_status=resp.status_code,
                path=path,
            )
        return resp

    @staticmethod
    def _parse_shop(data: Dict[str, Any]) -> ShopRecord:
        embedding = data.get("embedding")
        return ShopRecord(
            id=data["id"],
            name=data.get("name") or "",
            hours=data.get("hours") or "",
            services=data.get("services") or "",
            pricing=data.get("pricing") or "",
            parking=data.get("parking") or "",
            payments=data.get("payments") or "",
            notes=data.get("notes") or "",
            raw_text=data.get("raw_text") or None,
            embedding=[float(x) for x in embedding] if embedding else None,
        )
