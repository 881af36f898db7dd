"""
Constants and configuration values used across the polarbox codebase.
"""

# Docker images
DEFAULT_BITCOIN_IMAGE = "polarlightning/bitcoind:28.0"
BITCOIN_IMAGES = [
    "polarlightning/bitcoind:28.0",
    "polarlightning/bitcoind:27.0",
    "polarlightning/bitcoind:26.0",
]
DEFAULT_LND_IMAGE = "polarlightning/lnd:0.18.5-beta"
LND_IMAGES = [
    "polarlightning/lnd:0.18.5-beta",
    "polarlightning/lnd:0.18.3-beta",
    "polarlightning/lnd:0.17.5-beta",
    "polarlightning/lnd:0.16.4-beta",
]

# Network defaults
DEFAULT_LND_COUNT = 2
DEFAULT_ALIAS_PREFIX = "polar-node"
BITCOIN_NODE_NAME = "bitcoin-1"
DEFAULT_WALLET_NAME = "default"

# Container / docker network naming
DOCKER_NETWORK_PREFIX = "polar"
BITCOIN_CONTAINER_PREFIX = "polar-btc"
LND_CONTAINER_PREFIX = "polar-lnd"

# Container labels
LABEL_NETWORK = "polarbox.network"
LABEL_NODE = "polarbox.node"
LABEL_NODE_KIND = "polarbox.kind"

# Credentials baked into the node command lines
RPC_USER = "polaruser"
RPC_PASSWORD = "polarpass"

# Container-side ports
BITCOIN_RPC_PORT = 18443
BITCOIN_P2P_PORT = 18444
BITCOIN_ZMQ_BLOCK_PORT = 28334
BITCOIN_ZMQ_TX_PORT = 28335
LND_REST_PORT = 8080
LND_GRPC_PORT = 10009
LND_P2P_PORT = 9735

# Host port allocation
PORT_RANGE_START = 20000
PORT_BLOCK_SIZE = 10  # ports reserved per node
MAX_HOST_PORT = 65535

# CLI invocations inside the containers
BITCOIN_CLI = [
    "bitcoin-cli",
    "-regtest",
    f"-rpcuser={RPC_USER}",
    f"-rpcpassword={RPC_PASSWORD}",
]
LND_DATA_DIR = "/home/lnd/.lnd"
LNCLI = [
    "lncli",
    "--network=regtest",
    f"--tlscertpath={LND_DATA_DIR}/tls.cert",
    f"--macaroonpath={LND_DATA_DIR}/data/chain/bitcoin/regtest/admin.macaroon",
]

# Workflow defaults
DEFAULT_MINE_BLOCKS = 100
FUNDING_CONFIRMATIONS = 6
SATS_PER_BTC = 100_000_000

# Timeouts and polling
CONTAINER_STOP_TIMEOUT = 10  # seconds
BITCOIN_READY_TIMEOUT = 30.0  # seconds for bitcoind RPC to answer after start
LND_SYNC_TIMEOUT = 30.0  # seconds for LND to observe newly mined blocks
READY_POLL_INTERVAL = 0.5  # seconds between readiness checks

# Error messages
ERROR_NETWORK_NOT_FOUND = "network not found: {name}"
ERROR_NETWORK_EXISTS = "Network '{name}' already exists"
ERROR_NODE_NOT_FOUND = "Node '{node}' not found in network '{network}'"
ERROR_NODE_NOT_RUNNING = "Node {node} is not running"
ERROR_NO_BITCOIN_NODE = "No Bitcoin node found in network"
ERROR_DELETE_BITCOIN_NODE = (
    "Cannot delete Bitcoin node '{node}'. Delete the entire network instead."
)
ERROR_NO_WALLET = "No wallet loaded. Try restarting the network."
