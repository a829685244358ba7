import logging

from dualbuild.config import config

logging.basicConfig(
    format='%(asctime)s [%(name)s] %(levelname)s: %(message)s',
    level=logging.INFO,
)
if config.debug:
    logging.getLogger('dualbuild.runner').setLevel(logging.DEBUG)
    logging.getLogger('dualbuild.utils').setLevel(logging.DEBUG)
