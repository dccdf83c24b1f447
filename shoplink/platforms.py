"""已支持平台表与链接识别.

平台按固定顺序匹配, 平台内的模式也按顺序匹配, 首个命中即返回.
e.tb.cn 短链接淘宝、天猫共用, 淘宝排在前面.
"""

from __future__ import annotations

import re
from urllib.parse import parse_qsl, urlsplit

from shoplink.models import PlatformDescriptor


def _compile(*patterns: str) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


def _extractors(**patterns: str) -> tuple[tuple[str, re.Pattern], ...]:
    return tuple((name, re.compile(p, re.IGNORECASE)) for name, p in patterns.items())


_TAOBAO_SHORT = _compile(
    r"//e\.tb\.cn/h\.",
    r"//s\.click\.taobao\.com/",
    r"//uland\.taobao\.com/",
    r"//m\.tb\.cn/",
)
_TMALL_SHORT = _compile(
    r"//e\.tb\.cn/h\.",
    r"//s\.click\.tmall\.com/",
    r"//uland\.tmall\.com/",
)
_JD_SHORT = _compile(
    r"//u\.jd\.com/",
    r"//(?:www\.)?3\.cn/",
)
_PDD_SHORT = _compile(
    r"//p\.pinduoduo\.com/",
    r"//(?:[\w-]+\.)?pdd\.cn/",
)

TAOBAO = PlatformDescriptor(
    key="TAOBAO",
    display_name="淘宝",
    domain_patterns=_compile(
        r"//(?:item|detail|world)\.taobao\.com/item\.htm",
        r"//h5\.m\.taobao\.com/awp/core/detail\.htm",
    ) + _TAOBAO_SHORT,
    short_link_patterns=_TAOBAO_SHORT,
    param_extractors=_extractors(
        id=r"[?&]id=(\d+)",
        tk=r"[?&]tk=([^&\s#]+)",
    ),
    hosts=("taobao.com", "tb.cn"),
    device="pc",
    referer="https://www.taobao.com/",
)

TMALL = PlatformDescriptor(
    key="TMALL",
    display_name="天猫",
    domain_patterns=_compile(
        r"//(?:chaoshi\.)?detail\.tmall\.(?:com|hk)/item\.htm",
        r"//detail\.m\.tmall\.com/item\.htm",
        r"//h5\.m\.tmall\.com/awp/core/detail\.htm",
    ) + _TMALL_SHORT,
    short_link_patterns=_TMALL_SHORT,
    param_extractors=_extractors(
        id=r"[?&]id=(\d+)",
        sku=r"[?&]skuId=(\d+)",
        tk=r"[?&]tk=([^&\s#]+)",
    ),
    hosts=("tmall.com", "tmall.hk"),
    device="pc",
    referer="https://www.tmall.com/",
)

JD = PlatformDescriptor(
    key="JD",
    display_name="京东",
    domain_patterns=_compile(
        r"//item\.jd\.(?:com|hk)/\d+\.html",
        r"//item\.m\.jd\.com/product/\d+\.html",
    ) + _JD_SHORT,
    short_link_patterns=_JD_SHORT,
    param_extractors=_extractors(
        id=r"(?:jd\.com|jd\.hk|product)/(\d+)\.html",
        sku=r"[?&]sku(?:Id)?=(\d+)",
    ),
    hosts=("jd.com", "jd.hk", "3.cn"),
    device="pc",
    referer="https://www.jd.com/",
)

PDD = PlatformDescriptor(
    key="PDD",
    display_name="拼多多",
    domain_patterns=_compile(
        r"//(?:mobile\.)?yangkeduo\.com/goods\d?\.html",
        r"//(?:mobile\.)?pinduoduo\.com/goods\d?\.html",
    ) + _PDD_SHORT,
    short_link_patterns=_PDD_SHORT,
    param_extractors=_extractors(
        goods_id=r"[?&]goods_id=(\d+)",
        goods_sign=r"[?&]goods_sign=([^&\s#]+)",
    ),
    hosts=("yangkeduo.com", "pinduoduo.com", "pdd.cn", "pdd.com"),
    device="mobile",
    referer="https://mobile.yangkeduo.com/",
)

# 匹配顺序即此元组顺序
PLATFORMS: tuple[PlatformDescriptor, ...] = (TAOBAO, TMALL, JD, PDD)
PLATFORMS_BY_KEY = {p.key: p for p in PLATFORMS}

# 按字符串推断平台时的顺序: 天猫域名比淘宝更具体, 先判断
_INFER_ORDER = (JD, TMALL, TAOBAO, PDD)


def identify(url: str) -> PlatformDescriptor | None:
    """识别链接所属平台. 未知域名返回 None."""
    if not url:
        return None
    for platform in PLATFORMS:
        for pattern in platform.domain_patterns:
            if pattern.search(url):
                return platform
    return None


def is_short_link(url: str, platform: PlatformDescriptor | None = None) -> bool:
    """链接是否为 (指定平台或任一平台的) 短链接."""
    candidates = (platform,) if platform else PLATFORMS
    return any(p.search(url) for c in candidates for p in c.short_link_patterns)


def extract_params(url: str, platform: PlatformDescriptor) -> dict[str, str]:
    """用平台的参数提取器取参数, 再合并查询字符串中尚未取到的参数."""
    params: dict[str, str] = {}
    for name, pattern in platform.param_extractors:
        m = pattern.search(url)
        if m and m.group(1):
            params[name] = m.group(1)

    for key, value in parse_qsl(urlsplit(url).query):
        if value and key not in params:
            params[key] = value

    return params


def infer_platform(url: str) -> PlatformDescriptor | None:
    """按主机名推断平台, 不依赖完整的链接解析. 用于错误商品."""
    if not isinstance(url, str) or not url:
        return None
    text = url.strip()
    if "//" not in text:
        text = "//" + text
    try:
        host = (urlsplit(text).hostname or "").lower()
    except ValueError:
        return None
    if not host:
        return None
    for platform in _INFER_ORDER:
        for h in platform.hosts:
            if host == h or host.endswith("." + h):
                return platform
    return None


def classify_url_type(url: str, platform: PlatformDescriptor | None) -> str:
    """链接类型: product_detail / search_result / short_link / other / unknown."""
    if platform is None:
        return "unknown"
    if is_short_link(url, platform):
        return "short_link"
    path = urlsplit(url).path
    if path.endswith("item.htm") or path.endswith(".html") or path.endswith("detail.htm"):
        return "product_detail"
    if "search" in url or "/s?" in url:
        return "search_result"
    return "other"


def supported_platforms() -> list[str]:
    """已支持的平台名称列表."""
    return [p.display_name for p in PLATFORMS]
