import json
import logging

from pos_backend.utils.config import BaseConfig, DevelopmentConfig, ProductionConfig
from pos_backend.utils.structured_logging import ColoredFormatter, JSONFormatter


def _record(msg="Order 1001 mirrored (created)", **extra):
    record = logging.LogRecord("pos_backend.sync", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_cors_origins_accept_comma_separated_values():
    config = BaseConfig(CORS_ORIGINS="https://pos.example.com, https://admin.example.com")

    assert config.CORS_ORIGINS == ["https://pos.example.com", "https://admin.example.com"]
    assert BaseConfig(CORS_ORIGINS=["*"]).CORS_ORIGINS == ["*"]


def test_configured_flags():
    config = DevelopmentConfig(WOO_CONSUMER_KEY="ck", WOO_CONSUMER_SECRET=None, BASEROW_TOKEN="t",
                               BASEROW_ORDERS_TABLE_ID="1", BASEROW_CUSTOMERS_TABLE_ID="2")

    assert config.woo_configured is False
    assert config.baserow_configured is True


def test_production_profile_defaults():
    config = ProductionConfig()

    assert config.is_production is True
    assert config.ENABLE_TOKEN_ROTATION is True
    assert DevelopmentConfig().is_production is False


def test_json_formatter_carries_context_fields():
    line = json.loads(JSONFormatter().format(_record(woo_order_id=1001, job="order_sync")))

    assert line["message"] == "Order 1001 mirrored (created)"
    assert line["woo_order_id"] == 1001
    assert line["job"] == "order_sync"
    assert line["timestamp"].endswith("Z")
    assert "woo_customer_id" not in line


def test_colored_formatter_truncates_and_appends_context():
    line = ColoredFormatter().format(_record(msg="x" * 2000, woo_customer_id=42))

    assert "x" * 998 not in line
    assert line.endswith("... [woo_customer_id=42]" + ColoredFormatter.RESET)
