"""数据模型定义."""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field, fields
from typing import Any

from shoplink.errors import (
    RedirectError,
    UnsupportedPlatformError,
    ValidationError,
)

IN_STOCK = "in_stock"
OUT_OF_STOCK = "out_of_stock"
UNKNOWN = "unknown"

AVAILABILITY_VALUES = (IN_STOCK, OUT_OF_STOCK, UNKNOWN)


@dataclass(frozen=True)
class PlatformDescriptor:
    """一个已支持的电商平台. 进程启动时构建, 之后不再修改."""

    key: str  # 例: JD
    display_name: str  # 例: 京东
    domain_patterns: tuple[re.Pattern, ...]  # 商品详情页 + 短链接, 按顺序匹配
    short_link_patterns: tuple[re.Pattern, ...]
    param_extractors: tuple[tuple[str, re.Pattern], ...]  # (参数名, 正则)
    hosts: tuple[str, ...] = ()  # 失败时按字符串推断平台用
    device: str = "pc"  # 请求头使用的 UA 类型: "pc" or "mobile"
    referer: str = ""


@dataclass(frozen=True)
class ResolvedUrl:
    """一次链接解析的结果, 创建后不再修改."""

    original_url: str
    final_url: str
    platform: PlatformDescriptor | None
    clean_url: str = ""  # final_url 去掉追踪参数后的链接, 用于抓取
    is_short_link: bool = False
    redirect_path: tuple[str, ...] = ()  # 首项为 original_url, 末项为 final_url
    redirect_count: int = 0
    extracted_params: dict[str, str] = field(default_factory=dict)
    url_type: str = UNKNOWN
    warning: str | None = None  # 重定向降级 (跳数上限、循环、缺 Location)
    error: str | None = None
    error_kind: str | None = None  # validation / unsupported / timeout / http_error / network

    @property
    def ok(self) -> bool:
        """平台已识别即可继续后续流程 (可能是降级结果)."""
        return self.platform is not None

    def raise_for_error(self) -> None:
        """平台未识别时抛出对应的异常."""
        if self.ok:
            return
        message = self.error or "链接解析失败"
        if self.error_kind == "validation":
            raise ValidationError(message)
        if self.error_kind == "unsupported" or self.error_kind is None:
            raise UnsupportedPlatformError(message)
        raise RedirectError(message, kind=self.error_kind)

    def to_dict(self) -> dict[str, Any]:
        return {
            "original_url": self.original_url,
            "final_url": self.final_url,
            "clean_url": self.clean_url,
            "platform": self.platform.display_name if self.platform else None,
            "platform_key": self.platform.key if self.platform else None,
            "is_short_link": self.is_short_link,
            "redirect_path": list(self.redirect_path),
            "redirect_count": self.redirect_count,
            "extracted_params": dict(self.extracted_params),
            "url_type": self.url_type,
            "warning": self.warning,
            "error": self.error,
            "error_kind": self.error_kind,
        }


@dataclass
class ShopInfo:
    """店铺信息."""

    name: str | None = None
    location: str | None = None


@dataclass
class RawProductFields:
    """抽取阶段得到的原始字段, 全部可为空."""

    title: str | None = None
    price: str | None = None  # 标准化前的价格文本
    original_price: str | None = None
    brand: str | None = None
    model: str | None = None
    specifications: dict[str, str] = field(default_factory=dict)
    description: str | None = None
    images: list[str] = field(default_factory=list)
    shop: ShopInfo = field(default_factory=ShopInfo)
    sales: str | None = None
    rating: str | None = None
    review_count: str | None = None
    availability: str = UNKNOWN
    params: dict[str, str] = field(default_factory=dict)  # 已选 SKU 选项等
    shipping: str | None = None


@dataclass
class Product:
    """标准化后的商品记录, 以 id 为键持久化."""

    id: str
    title: str | None
    price: str | None  # 两位小数字符串, 未知为 None
    platform: str
    platform_key: str
    original_link: str
    clean_link: str
    final_url: str
    parse_time: str  # ISO 8601
    success: bool = True
    original_price: str | None = None
    image: str | None = None
    images: list[str] = field(default_factory=list)
    is_short_link: bool = False
    brand: str = ""
    model: str = ""
    specifications: dict[str, str] = field(default_factory=dict)
    description: str = ""
    shop: ShopInfo = field(default_factory=ShopInfo)
    rating: float | None = None
    sales: int | None = None
    review_count: int | None = None
    availability: str = UNKNOWN
    params: dict[str, str] = field(default_factory=dict)
    shipping: str = ""
    error: str | None = None
    error_type: str | None = None
    suggestion: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Product:
        """DB 行 (或 to_dict 的结果) 还原为 Product, 忽略未知列."""
        known = {f.name for f in fields(cls)}
        data = {k: v for k, v in record.items() if k in known}
        shop = data.get("shop")
        if isinstance(shop, dict):
            data["shop"] = ShopInfo(name=shop.get("name"), location=shop.get("location"))
        elif shop is None:
            data["shop"] = ShopInfo()
        for key in ("specifications", "params"):
            if data.get(key) is None:
                data[key] = {}
        if data.get("images") is None:
            data["images"] = []
        return cls(**data)


@dataclass
class BatchResult:
    """批量解析结果, products 与输入顺序一致."""

    products: list[Product]
    summary: dict[str, int]

    def to_dict(self) -> dict[str, Any]:
        return {
            "products": [p.to_dict() for p in self.products],
            "summary": dict(self.summary),
        }


@dataclass
class ResolveBatchResult:
    """批量重定向解析结果, results 与输入顺序一致."""

    results: list[ResolvedUrl]
    summary: dict[str, int]

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "summary": dict(self.summary),
        }
