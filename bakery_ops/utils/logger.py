"""Simple logger utility."""
import logging
import os

logger = logging.getLogger("bakery")
if not logger.handlers:
    h = logging.StreamHandler()
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(message)s")
    h.setFormatter(fmt)
    logger.addHandler(h)
    logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())


def get_logger():
    return logger


def _fmt_context(context):
    if not context:
        return ""
    return " " + " ".join(f"{k}={v}" for k, v in context.items())


def log_api_request(method: str, endpoint: str, status_code: int, duration_ms: float, **context):
    level = logging.ERROR if status_code >= 500 else logging.WARNING if status_code >= 400 else logging.INFO
    logger.log(level, f"API {method} {endpoint} -> {status_code} ({duration_ms:.1f}ms){_fmt_context(context)}")


def log_tool_execution(tool_name: str, args, **context):
    logger.info(f"[TOOL] {tool_name} args={args}{_fmt_context(context)}")


def log_tool_result(tool_name: str, success: bool, result_size: int, duration_ms: float, **context):
    status = "ok" if success else "failed"
    logger.info(f"[TOOL] {tool_name} {status} size={result_size} ({duration_ms:.1f}ms){_fmt_context(context)}")
