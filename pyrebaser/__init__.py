"""
The main pyrebaser package.
"""
import logging
import sys

# Default format for logs
LOG_FORMAT = '%(asctime)s.%(msecs)03d [%(levelname)s] %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

def setup_logging(verbose: int = 0) -> None:
    """Setup logging with appropriate level based on verbosity.
    
    Args:
        verbose: Verbosity level
            0 or 1 = INFO and above (default, shows every rebase decision)
            2 or more = DEBUG and above, including every git command
    """
    # Set log level based on verbosity
    if verbose >= 2:
        level = logging.DEBUG
    else:
        level = logging.INFO

    # Get the root logger and reconfigure handlers
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove any existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    # Add handler with our format
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
    logger.addHandler(handler)
