# core/logging_setup.py
from __future__ import annotations

import logging
import logging.handlers
import queue
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from core.logging_context import corr_id_var, rotation_var, action_var

LOG_FORMAT = (
    "%(asctime)s %(levelname)s "
    "[pid=%(process)d tid=%(thread)d] "
    "%(name)s:%(funcName)s:%(lineno)d "
    "corr=%(corr_id)s rotation=%(rotation)s action=%(action)s - %(message)s"
)

class ContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        # 注入上下文字段；保证 formatter 里引用时永远存在
        # extra={"action": ...} 显式传入的值优先
        if not hasattr(record, "corr_id"):
            record.corr_id = corr_id_var.get()
        if not hasattr(record, "rotation"):
            record.rotation = rotation_var.get()
        if not hasattr(record, "action"):
            record.action = action_var.get()
        return True

@dataclass
class LoggingRuntime:
    listener: logging.handlers.QueueListener
    handlers: tuple[logging.Handler, ...] = ()

    def stop(self) -> None:
        try:
            self.listener.stop()
        except Exception:
            logging.getLogger(__name__).debug("log listener already stopped", exc_info=True)
        for h in self.handlers:
            h.close()

def setup_logging(
    *,
    logs_dir: Optional[Path] = None,
    level: str = "INFO",
    keep_days_app: int = 14,
    keep_days_error: int = 30,
    console: bool = False,
) -> LoggingRuntime:
    """
    初始化进程级日志：

    - root logger 只挂一个 QueueHandler，任何线程打日志都只是入队；
    - QueueListener 线程负责真正写出：
        * logs_dir 不为空时：app.log（INFO+）与 error.log（ERROR+），按天轮转
        * console=True 时：stderr（DEBUG+）
    - 每条记录都带 corr_id / rotation / action 三个上下文字段。
    """
    log_q: queue.Queue[logging.LogRecord] = queue.Queue(maxsize=20_000)
    formatter = logging.Formatter(fmt=LOG_FORMAT)

    handlers: list[logging.Handler] = []

    if logs_dir is not None:
        logs_dir.mkdir(parents=True, exist_ok=True)

        app_fh = logging.handlers.TimedRotatingFileHandler(
            filename=str(logs_dir / "app.log"),
            when="midnight",
            backupCount=int(keep_days_app),
            encoding="utf-8",
            utc=False,
        )
        app_fh.setLevel(logging.INFO)
        handlers.append(app_fh)

        err_fh = logging.handlers.TimedRotatingFileHandler(
            filename=str(logs_dir / "error.log"),
            when="midnight",
            backupCount=int(keep_days_error),
            encoding="utf-8",
            utc=False,
        )
        err_fh.setLevel(logging.ERROR)
        handlers.append(err_fh)

    if console:
        ch = logging.StreamHandler(stream=sys.stderr)
        ch.setLevel(logging.DEBUG)
        handlers.append(ch)

    for h in handlers:
        h.setFormatter(formatter)
        h.addFilter(ContextFilter())

    # root logger 只挂 QueueHandler，避免多线程直接写文件
    qh = logging.handlers.QueueHandler(log_q)
    qh.setLevel(logging.DEBUG)
    qh.addFilter(ContextFilter())

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()
    root.addHandler(qh)

    # listener 线程负责把队列记录写入文件/console
    listener = logging.handlers.QueueListener(
        log_q,
        *handlers,
        respect_handler_level=True,
    )
    listener.start()

    _install_global_exception_hooks()

    logging.getLogger(__name__).info(
        "logging initialized",
        extra={"action": "boot"},
    )

    return LoggingRuntime(listener=listener, handlers=tuple(handlers))

def _install_global_exception_hooks() -> None:
    log = logging.getLogger("unhandled")

    def excepthook(exc_type, exc, tb):
        log.critical("unhandled exception (main thread)", exc_info=(exc_type, exc, tb))

    sys.excepthook = excepthook

    def th_excepthook(args: threading.ExceptHookArgs):
        log.critical(
            "unhandled exception (thread)",
            extra={"action": "thread_excepthook"},
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
        )

    threading.excepthook = th_excepthook
