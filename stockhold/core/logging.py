# stockhold/core/logging.py
import logging
import sys


def setup_logging(level: str = "INFO", json: bool = False) -> None:
    """
    极简统一日志：
    - 根 logger 设级别
    - 单一 stdout handler，避免重复输出
    - 预留 json 开关（暂不实现）
    """
    root = logging.getLogger()
    root.setLevel(level.upper())

    # 清已有 handlers，避免重复
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    fmt = "%(asctime)s %(levelname)s %(name)s %(message)s"
    handler.setFormatter(logging.Formatter(fmt))
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.INFO)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if level.upper() == "DEBUG" else logging.WARNING
    )
    # APScheduler 每次触发都会打 INFO，周期短时非常吵
    logging.getLogger("apscheduler").setLevel(
        logging.INFO if level.upper() == "DEBUG" else logging.WARNING
    )


def get_logger(component: str) -> logging.Logger:
    """组件默认 logger：stockhold.<component>，调用方可显式注入替换。"""
    return logging.getLogger(f"stockhold.{component}")
