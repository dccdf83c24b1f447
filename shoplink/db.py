"""Supabase 数据库操作模块.

全部表位于 SUPABASE_SCHEMA 指定的 schema (默认 shoplink).
Supabase client 的 schema 通过 .schema() 指定.

表:
  products       商品记录, 以 id 为主键 upsert
  price_history  价格历史, 每次保存商品追加一行
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from supabase import Client, create_client

from shoplink.config import SUPABASE_SCHEMA, SUPABASE_SECRET_KEY, SUPABASE_URL
from shoplink.models import Product

logger = logging.getLogger(__name__)

_client: Client | None = None


def _get_client() -> Client:
    """首次使用时创建 client. 未配置连接信息时抛 RuntimeError."""
    global _client
    if _client is None:
        if not (SUPABASE_URL and SUPABASE_SECRET_KEY):
            raise RuntimeError("SUPABASE_URL / SUPABASE_SECRET_KEY 未配置")
        _client = create_client(SUPABASE_URL, SUPABASE_SECRET_KEY)
    return _client


def _table(name: str):
    """引用 shoplink schema 的表."""
    return _get_client().schema(SUPABASE_SCHEMA).table(name)


def save_product(product: Product) -> bool:
    """按 id upsert 商品, 并追加一条价格历史.

    价格未知 (None) 时不写价格历史.

    Returns:
        保存成功为 True.
    """
    record = product.to_dict()
    _table("products").upsert(record, on_conflict="id").execute()
    logger.info("products upsert: %s", product.id)

    if product.price is not None:
        _table("price_history").insert({
            "product_id": product.id,
            "price": product.price,
            "availability": product.availability,
            "recorded_at": product.parse_time,
        }).execute()
        logger.info("price_history 追加: %s %s", product.id, product.price)
    return True


def get_product_by_id(product_id: str) -> Product | None:
    """按 id 取商品. 不存在返回 None."""
    resp = (
        _table("products")
        .select("*")
        .eq("id", product_id)
        .limit(1)
        .execute()
    )
    if not resp.data:
        return None
    return Product.from_record(resp.data[0])


def get_price_history(product_id: str, days: int) -> list[dict]:
    """取最近 days 天的价格历史, 按时间升序.

    Returns:
        [{"price": str, "availability": str, "date": str}, ...]
    """
    since = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()
    resp = (
        _table("price_history")
        .select("price, availability, recorded_at")
        .eq("product_id", product_id)
        .gte("recorded_at", since)
        .order("recorded_at")
        .execute()
    )

    return [
        {
            "price": row.get("price"),
            "availability": row.get("availability"),
            "date": row.get("recorded_at"),
        }
        for row in resp.data
    ]
