"""
로깅 설정 패키지
"""

from noteworthy.logging.structured_logger import current_session_id, setup_logging

__all__ = ["current_session_id", "setup_logging"]
