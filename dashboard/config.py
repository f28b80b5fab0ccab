# dashboard/config.py
# Settings for the student dashboard client, read from the project-root .env.

import os
from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
PROJECT_ROOT = os.path.dirname(basedir)

load_dotenv(os.path.join(PROJECT_ROOT, '.env'))


class DashboardConfig:
    """Where the dashboard finds the REST backend, the chain and the IPFS gateway."""
    BACKEND_URL = (os.environ.get('BACKEND_URL') or 'http://127.0.0.1:5000').rstrip('/')
    REQUEST_TIMEOUT = int(os.environ.get('BACKEND_TIMEOUT', '15'))

    RPC_URL = os.environ.get('RPC_URL') or 'https://alfajores-forno.celo-testnet.org'
    CONTRACT_ADDRESS = os.environ.get('CONTRACT_ADDRESS')
    CONTRACT_ABI_PATH = os.environ.get('CONTRACT_ABI_PATH')
    WALLET_PRIVATE_KEY = os.environ.get('WALLET_PRIVATE_KEY')
    TRANSFER_TIMEOUT = int(os.environ.get('TRANSFER_TIMEOUT', '180'))
    CURRENCY_SYMBOL = os.environ.get('CURRENCY_SYMBOL') or 'CELO'

    IPFS_GATEWAY_URL = (os.environ.get('IPFS_GATEWAY_URL') or 'https://gateway.pinata.cloud/ipfs').rstrip('/')

    NOTICE_TTL_SECONDS = 3
    FEE_LOOKUP_WORKERS = 2
