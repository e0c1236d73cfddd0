import logging

logger = logging.getLogger("parsetrace")
logger.setLevel(logging.INFO)
