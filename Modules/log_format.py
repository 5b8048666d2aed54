import os

LOG_LEVEL = os.environ.get('RPGM_CIPHER_LOG_LEVEL', 'INFO')
LOG_FORMAT = '[%(asctime)s][%(levelname)s][%(name)s] %(message)s'

FIELD_STYLE = {
    'asctime': {'color': 'green'},
    'levelname': {'color': 'blue', 'bold': True},
    'name': {'color': 'magenta'},
    'message': {'color': 144, 'bright': False}
}
