"""
Logging configuration for PlanScope
"""

import sys
import logging
from pathlib import Path
from typing import Optional
from logging.handlers import TimedRotatingFileHandler
from datetime import datetime

from planscope.core.constants import APP_NAME, LOG_FILE


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors for console output"""
    
    # ANSI color codes
    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m',      # Reset
    }
    
    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None, 
                 use_colors: bool = True):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors and self._supports_color()
    
    @staticmethod
    def _supports_color() -> bool:
        """Check if terminal supports colors"""
        return hasattr(sys.stderr, 'isatty') and sys.stderr.isatty()
    
    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return super().format(record)
        # Color a copy so other handlers see the plain level name
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        record.levelname = f"{color}{record.levelname}{self.COLORS['RESET']}"
        return super().format(record)


class PlanScopeLogger:
    """Application logger with file and console handlers"""
    
    _instance: Optional['PlanScopeLogger'] = None
    _initialized: bool = False
    
    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance
    
    def __init__(self):
        if self._initialized:
            return
        
        self.logger = logging.getLogger(APP_NAME)
        self.logger.setLevel(logging.INFO)
        self._handlers: dict[str, logging.Handler] = {}
        self._initialized = True
    
    def setup(
        self,
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        file_enabled: bool = False,
        retention_days: int = 7,
        console_colors: bool = True,
    ) -> logging.Logger:
        """
        Configure logging with file and console handlers
        
        Args:
            level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files
            file_enabled: Enable file logging
            retention_days: Number of days to keep daily rotated logs
            console_colors: Use colored output in console
        
        Returns:
            Configured logger instance
        """
        for handler in self._handlers.values():
            self.logger.removeHandler(handler)
            handler.close()
        self._handlers.clear()
        
        log_level = getattr(logging, level.upper(), logging.INFO)
        self.logger.setLevel(log_level)
        
        # Console handler (stderr, parsing results may be piped on stdout)
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(log_level)
        console_format = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        console_formatter = ColoredFormatter(
            fmt=console_format,
            datefmt="%H:%M:%S",
            use_colors=console_colors
        )
        console_handler.setFormatter(console_formatter)
        self.logger.addHandler(console_handler)
        self._handlers['console'] = console_handler
        
        # File handler
        if file_enabled and log_dir:
            log_dir = Path(log_dir)
            log_dir.mkdir(parents=True, exist_ok=True)
            
            file_handler = TimedRotatingFileHandler(
                log_dir / LOG_FILE,
                when='midnight',
                interval=1,
                backupCount=max(1, int(retention_days)),
                encoding='utf-8'
            )
            file_handler.suffix = "%Y-%m-%d"
            file_handler.setLevel(logging.DEBUG)  # File gets all levels
            
            file_format = "%(asctime)s | %(levelname)-8s | %(name)s | %(filename)s:%(lineno)d | %(message)s"
            file_handler.setFormatter(logging.Formatter(
                fmt=file_format,
                datefmt="%Y-%m-%d %H:%M:%S"
            ))
            self.logger.addHandler(file_handler)
            self._handlers['file'] = file_handler
        
        return self.logger
    
    def get_logger(self, name: Optional[str] = None) -> logging.Logger:
        """Get a child logger with optional name"""
        if name:
            return self.logger.getChild(name)
        return self.logger
    
    def set_level(self, level: str) -> None:
        """Change logging level at runtime"""
        log_level = getattr(logging, level.upper(), logging.INFO)
        self.logger.setLevel(log_level)
        if 'console' in self._handlers:
            self._handlers['console'].setLevel(log_level)


# Module-level functions for convenience

_app_logger: Optional[PlanScopeLogger] = None


def setup_logging(
    level: str = "INFO",
    log_dir: Optional[Path] = None,
    file_enabled: bool = False,
    retention_days: int = 7,
    console_colors: bool = True,
) -> logging.Logger:
    """
    Setup application logging
    
    Library users normally skip this and configure the ``PlanScope`` logger
    themselves; scripts call it once at startup.
    """
    global _app_logger
    _app_logger = PlanScopeLogger()
    return _app_logger.setup(
        level=level,
        log_dir=log_dir,
        file_enabled=file_enabled,
        retention_days=retention_days,
        console_colors=console_colors,
    )


def setup_logging_from_settings(settings=None) -> logging.Logger:
    """Setup logging from the ``logging`` section of the application settings"""
    if settings is None:
        from planscope.core.config import get_settings
        settings = get_settings()
    
    log_settings = settings.logging
    return setup_logging(
        level=log_settings.level,
        log_dir=settings.logs_dir,
        file_enabled=log_settings.file_enabled,
        retention_days=log_settings.retention_days,
        console_colors=log_settings.console_colors,
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger instance
    
    Unlike a GUI entry point, importing the library must not install
    handlers, so an unconfigured logger simply propagates to the root logger.
    
    Args:
        name: Optional name for child logger (e.g., 'analysis.plan_parser')
    
    Returns:
        Logger instance
    
    Example:
        >>> logger = get_logger('analysis')
        >>> logger.info('Parsed plan')
    """
    global _app_logger
    if _app_logger is None:
        _app_logger = PlanScopeLogger()
    
    return _app_logger.get_logger(name)


class LogContext:
    """
    Context manager for logging operation timing
    
    Example:
        >>> with LogContext(logger, "Parsing plan"):
        ...     parse()
        # Logs: "Parsing plan... started"
        # Logs: "Parsing plan... completed in 0.01s"
    """
    
    def __init__(self, logger: logging.Logger, operation: str, level: int = logging.DEBUG):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.start_time: Optional[datetime] = None
        self.duration: float = 0.0
    
    def __enter__(self):
        self.start_time = datetime.now()
        self.logger.log(self.level, f"{self.operation}... started")
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = (datetime.now() - self.start_time).total_seconds()
        
        if exc_type is not None:
            self.logger.error(f"{self.operation}... failed after {self.duration:.2f}s: {exc_val}")
        else:
            self.logger.log(self.level, f"{self.operation}... completed in {self.duration:.2f}s")
        
        return False  # Don't suppress exceptions
