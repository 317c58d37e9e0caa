"""
Secure logging filter to keep LLM API keys out of log output
"""

import re
import logging
from typing import List


class SensitiveDataFilter(logging.Filter):
    """
    Logging filter that masks sensitive information in log records

    The advisor's API key travels through settings and provider setup,
    so any record that echoes it must be redacted before it is emitted.
    """

    # "name=value" pairs keep the name, mask the value
    SENSITIVE_PATTERNS: List[str] = [
        r'(api[_-]?key)["\']?\s*[:=]\s*["\']?[\w-]{10,}',
        r'(token)["\']?\s*[:=]\s*["\']?[\w-]{10,}',
        r'(bearer)\s+[\w-]{10,}',
    ]

    # Bare keys are masked entirely
    RAW_KEY_PATTERNS: List[str] = [
        r'sk-ant-[\w-]{20,}',  # Anthropic API key format
        r'sk-[\w-]{20,}',  # OpenAI API key format
        r'AIza[\w-]{35}',  # Google API key format
    ]

    def __init__(self):
        super().__init__()
        self.compiled_patterns = [
            re.compile(pattern, re.IGNORECASE)
            for pattern in self.SENSITIVE_PATTERNS
        ]
        self.compiled_key_patterns = [
            re.compile(pattern)
            for pattern in self.RAW_KEY_PATTERNS
        ]

    def filter(self, record: logging.LogRecord) -> bool:
        """
        Filter log record to remove sensitive information

        Args:
            record: The log record to filter

        Returns:
            Always True; records are rewritten, never dropped
        """
        if record.msg:
            record.msg = self._sanitize_string(str(record.msg))

        if record.args:
            if isinstance(record.args, dict):
                record.args = {
                    key: self._sanitize_string(arg) if isinstance(arg, str) else arg
                    for key, arg in record.args.items()
                }
            else:
                record.args = tuple(
                    self._sanitize_string(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )

        if record.exc_text:
            record.exc_text = self._sanitize_string(record.exc_text)

        return True

    def _sanitize_string(self, text: str) -> str:
        sanitized = text

        for pattern in self.compiled_patterns:
            sanitized = pattern.sub(r'\1=***REDACTED***', sanitized)

        for pattern in self.compiled_key_patterns:
            sanitized = pattern.sub('***REDACTED***', sanitized)

        return sanitized


def setup_secure_logging() -> None:
    """
    Attach the sensitive data filter to the root handlers and to the
    loggers that handle advisor configuration
    """
    sensitive_filter = SensitiveDataFilter()

    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        handler.addFilter(sensitive_filter)

    sensitive_loggers = [
        'sysarch.core.config',
        'sysarch.core.llm_providers',
        'sysarch.services.advisor_service',
        'sysarch.main',
        'uvicorn',
        'uvicorn.error'
    ]

    for logger_name in sensitive_loggers:
        logging.getLogger(logger_name).addFilter(sensitive_filter)

    logging.getLogger(__name__).info("Secure logging filter configured")
