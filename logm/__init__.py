import os
import sys
from functools import wraps

from loguru import logger

logger_format = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "{extra[uuid]} | <level>{message}</level>"
)
logger.configure(extra={"uuid": ""})
logger.remove()
logger.add(sys.stdout, format=logger_format, level=os.environ.get('LOGM_LV', "INFO"))


def log_stage(stage):
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            with logger.contextualize(uuid=f'{stage}.{func.__name__}'):
                return func(*args, **kwargs)
        return wrapper
    return decorator
