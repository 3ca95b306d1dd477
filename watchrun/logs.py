"""Logging configuration for the command line tool."""
import logging
import logging.config


DETAILED_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d - %(message)s'
SIMPLE_FORMAT = 'watchrun: %(message)s'


def setup_logging(verbose=False, quiet=False):
    # type: (bool, bool) -> logging.Logger
    if quiet:
        level = 'ERROR'
    elif verbose:
        level = 'DEBUG'
    else:
        level = 'INFO'
    config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'detailed': {
                'format': DETAILED_FORMAT,
                'datefmt': '%Y-%m-%d %H:%M:%S',
            },
            'simple': {'format': SIMPLE_FORMAT},
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'level': level,
                'formatter': 'detailed' if verbose else 'simple',
                'stream': 'ext://sys.stderr',
            },
        },
        'loggers': {
            'watchrun': {
                'handlers': ['console'],
                'level': level,
                'propagate': False,
            },
        },
    }
    logging.config.dictConfig(config)
    return logging.getLogger('watchrun')
