import logging
import os
from datetime import datetime
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logging(name: str = __name__, log_dir: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
    # an already configured root logger is left alone, no log file is opened
    if not logging.getLogger().handlers:
        handlers = [logging.StreamHandler()]
        if log_dir is not None:
            os.makedirs(log_dir, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            handlers.append(logging.FileHandler(os.path.join(log_dir, f"run_{timestamp}.log")))
        logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)
    return logging.getLogger(name)
