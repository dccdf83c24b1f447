"""商品链接解析的命令行入口.

用法:
  shoplink URL            解析一个商品, 输出 Product JSON
  shoplink URL URL ...    批量解析, 输出 products + summary
  shoplink --resolve-only URL ...
                          只解析链接 (平台识别、短链接重定向)
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime

from shoplink.config import LOG_DIR, LOG_LEVEL
from shoplink.errors import ValidationError
from shoplink.service import ProductService


def setup_logging() -> None:
    """日志的初始设置."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    log_file = LOG_DIR / f"shoplink_{datetime.now().strftime('%Y%m%d')}.log"
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr),
            logging.FileHandler(log_file, encoding="utf-8"),
        ],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="shoplink", description="解析电商商品链接")
    parser.add_argument("urls", nargs="+", metavar="URL", help="商品链接 (淘宝 / 天猫 / 京东 / 拼多多)")
    parser.add_argument("--resolve-only", action="store_true", help="只解析链接, 不抓取商品页面")
    return parser


def run(argv: list[str] | None = None) -> int:
    """主处理. 返回退出码."""
    args = build_parser().parse_args(argv)
    setup_logging()
    logger = logging.getLogger(__name__)
    service = ProductService()

    try:
        if args.resolve_only:
            result = service.resolve_links(args.urls).to_dict()
        elif len(args.urls) == 1:
            result = service.parse_product(args.urls[0]).to_dict()
        else:
            result = service.parse_products(args.urls).to_dict()
    except ValidationError as e:
        logger.error("%s", e)
        return 2

    print(json.dumps(result, ensure_ascii=False, indent=2))
    logger.info("解析统计: %s", service.parse_stats())
    return 0


if __name__ == "__main__":
    sys.exit(run())
