"""设定模块: 环境变量与常量定义."""

import os
from pathlib import Path

from dotenv import load_dotenv

# .env 放在运行目录
load_dotenv()

# --- Supabase ---
SUPABASE_URL: str | None = os.environ.get("SUPABASE_URL")
SUPABASE_SECRET_KEY: str | None = os.environ.get("SUPABASE_SECRET_KEY")
SUPABASE_SCHEMA: str = os.environ.get("SUPABASE_SCHEMA", "shoplink")

# 两者都配置时才启用持久化
PERSISTENCE_ENABLED = bool(SUPABASE_URL and SUPABASE_SECRET_KEY)

# --- User-Agent ---
PC_USER_AGENTS = [
    (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/131.0.0.0 Safari/537.36"
    ),
    (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/131.0.0.0 Safari/537.36"
    ),
    (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:133.0) "
        "Gecko/20100101 Firefox/133.0"
    ),
]
MOBILE_USER_AGENTS = [
    (
        "Mozilla/5.0 (iPhone; CPU iPhone OS 17_5 like Mac OS X) "
        "AppleWebKit/605.1.15 (KHTML, like Gecko) "
        "Version/17.5 Mobile/15E148 Safari/604.1"
    ),
    (
        "Mozilla/5.0 (Linux; Android 14; Pixel 8) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/131.0.0.0 Mobile Safari/537.36"
    ),
]

USER_AGENTS = {
    "pc": PC_USER_AGENTS,
    "mobile": MOBILE_USER_AGENTS,
}

BASE_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}

# 页面校验失败后重试用的请求头
ALT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}

# --- 请求设定 ---
REQUEST_TIMEOUT = 10  # 秒 (每跳 / 每次抓取)
MAX_REDIRECTS = 10
REDIRECT_DELAY = 0.2  # 秒
FETCH_RETRIES = 3
FETCH_RETRY_DELAY = 2.0  # 秒, 第 n 次重试前等待 (n * delay)

# --- 页面校验 ---
MIN_PAGE_LENGTH = 500
MIN_PRODUCT_MARKERS = 2

# --- 价格 ---
PRICE_MAX = 1_000_000
PRICE_SCAN_MIN = 10
PRICE_SCAN_MAX = 100_000

# --- 缓存 ---
CACHE_MAX_SIZE = 1024
REDIRECT_CACHE_TTL = 300  # 秒
PRODUCT_CACHE_TTL = 3600  # 秒

# --- 解析历史 ---
PARSE_HISTORY_SIZE = 100

# --- 批量 ---
MAX_BATCH_SIZE = 10
MAX_RESOLVE_BATCH_SIZE = 20
BATCH_WORKERS = 4

# --- 价格历史 ---
PRICE_HISTORY_DAYS_DEFAULT = 30
PRICE_HISTORY_DAYS_MAX = 365

# --- 日志 ---
LOG_DIR = Path(os.environ.get("SHOPLINK_LOG_DIR", "logs"))
LOG_LEVEL = os.environ.get("SHOPLINK_LOG_LEVEL", "INFO")
