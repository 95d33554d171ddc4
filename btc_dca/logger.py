import logging
from typing import Optional

from .config import LOG_DB_PATH, LOG_LEVEL

class DatabaseHandler(logging.Handler):
    """
    A logging handler that writes log records to the SQLite ``logs`` table.
    """
    def __init__(self, db_path: str):
        super().__init__()
        # Imported here: the datastore module logs through this one.
        from .datastore import SQLiteDataStore

        self.db_store = SQLiteDataStore(db_path)
        self.db_store.initialize()

    def emit(self, record: logging.LogRecord):
        """
        Saves a log record to the database.
        """
        try:
            self.db_store.insert_log(
                timestamp_ms=int(record.created * 1000),
                level=record.levelname,
                module=record.name,
                message=record.getMessage()
            )
        except Exception:
            self.handleError(record)

_logger: Optional[logging.Logger] = None

def get_logger(name: str, db_path: Optional[str] = LOG_DB_PATH) -> logging.Logger:
    """
    Configures the package logger once and returns a logger for ``name``.

    Records go to the console, and also to SQLite when ``db_path`` is set.
    """
    global _logger
    if _logger is None:
        _logger = logging.getLogger("BtcDca")
        _logger.setLevel(getattr(logging, LOG_LEVEL.upper(), logging.INFO))

        # Prevent logs from being propagated to the root logger
        _logger.propagate = False

        # Console handler
        if not any(isinstance(h, logging.StreamHandler) for h in _logger.handlers):
            console_handler = logging.StreamHandler()
            formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
            console_handler.setFormatter(formatter)
            _logger.addHandler(console_handler)

        # Database handler
        if db_path and not any(isinstance(h, DatabaseHandler) for h in _logger.handlers):
            db_handler = DatabaseHandler(db_path)
            _logger.addHandler(db_handler)

    return _logger.getChild(name)
