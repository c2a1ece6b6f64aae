import logging
import os
from datetime import datetime

def setup_logger(name):
    """
    Basic Custom Logging formatting and handling

    Handlers are only attached the first time a logger is requested, Streamlit
    re-executes the app script on every interaction and would otherwise stack
    duplicate handlers.

    Parameters
    name (str) : Name of the logger

    Returns:
    logging.Logger : Configured Logger Instance
    """

    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    os.makedirs('logs',exist_ok=True)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    # Configs for how logs will appear in logs/
    file_format = logging.Formatter(
        '%(levelname)s : %(name)s : %(funcName)s : %(lineno)d : %(message)s'
    )

    log_file = f'logs/seattle_crime_{datetime.now().strftime("%m%d%Y")}.log'
    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(file_format)

    # Console logs configs
    console_format = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s'
    )
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(console_format)


    # Add the config to the Logger obj
    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    return logger
