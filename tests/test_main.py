"""命令行入口的测试."""

import json
from unittest.mock import MagicMock, patch

from shoplink.errors import ValidationError
from shoplink.main import build_parser, run


class TestBuildParser:
    """build_parser 的测试."""

    def test_resolve_only(self):
        args = build_parser().parse_args(["--resolve-only", "https://u.jd.com/a"])
        assert args.resolve_only
        assert args.urls == ["https://u.jd.com/a"]


@patch("shoplink.main.setup_logging")
@patch("shoplink.main.ProductService")
class TestRun:
    """run 的测试."""

    def test_single_url(self, mock_service_cls, mock_setup, capsys):
        service = mock_service_cls.return_value
        service.parse_product.return_value.to_dict.return_value = {"id": "JD_1", "title": "华为"}
        service.parse_stats.return_value = {}

        assert run(["https://item.jd.com/1.html"]) == 0

        service.parse_product.assert_called_once_with("https://item.jd.com/1.html")
        out = capsys.readouterr().out
        assert json.loads(out) == {"id": "JD_1", "title": "华为"}
        assert "华为" in out

    def test_batch(self, mock_service_cls, mock_setup, capsys):
        service = mock_service_cls.return_value
        service.parse_products.return_value.to_dict.return_value = {"products": [], "summary": {}}
        service.parse_stats.return_value = {}

        assert run(["https://item.jd.com/1.html", "https://item.jd.com/2.html"]) == 0
        service.parse_products.assert_called_once_with(["https://item.jd.com/1.html", "https://item.jd.com/2.html"])

    def test_resolve_only(self, mock_service_cls, mock_setup, capsys):
        service = mock_service_cls.return_value
        service.resolve_links.return_value = MagicMock(to_dict=MagicMock(return_value={"results": []}))
        service.parse_stats.return_value = {}

        assert run(["--resolve-only", "https://u.jd.com/a"]) == 0
        service.resolve_links.assert_called_once_with(["https://u.jd.com/a"])
        service.parse_product.assert_not_called()

    def test_validation_error_exit_code(self, mock_service_cls, mock_setup, capsys):
        service = mock_service_cls.return_value
        service.parse_products.side_effect = ValidationError("批量解析最多支持 10 个链接")

        urls = [f"https://item.jd.com/{i}.html" for i in range(11)]
        assert run(urls) == 2
        assert capsys.readouterr().out == ""
