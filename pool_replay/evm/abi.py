"""ABI fragments for the V3 pool and the test callee contract.

Only the functions and events the replay harness touches are listed.
"""


def _param(name: str, type_: str, indexed: bool = False) -> dict:
    return {"name": name, "type": type_, "indexed": indexed}


def _input(name: str, type_: str) -> dict:
    return {"name": name, "type": type_}


POOL_ABI = [
    {
        "type": "function",
        "name": "initialize",
        "stateMutability": "nonpayable",
        "inputs": [_input("sqrtPriceX96", "uint160")],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "slot0",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [
            _input("sqrtPriceX96", "uint160"),
            _input("tick", "int24"),
            _input("observationIndex", "uint16"),
            _input("observationCardinality", "uint16"),
            _input("observationCardinalityNext", "uint16"),
            _input("feeProtocol", "uint8"),
            _input("unlocked", "bool"),
        ],
    },
    {
        "type": "function",
        "name": "liquidity",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [_input("", "uint128")],
    },
    {
        "type": "event",
        "name": "Mint",
        "anonymous": False,
        "inputs": [
            _param("sender", "address"),
            _param("owner", "address", indexed=True),
            _param("tickLower", "int24", indexed=True),
            _param("tickUpper", "int24", indexed=True),
            _param("amount", "uint128"),
            _param("amount0", "uint256"),
            _param("amount1", "uint256"),
        ],
    },
    {
        "type": "event",
        "name": "Burn",
        "anonymous": False,
        "inputs": [
            _param("owner", "address", indexed=True),
            _param("tickLower", "int24", indexed=True),
            _param("tickUpper", "int24", indexed=True),
            _param("amount", "uint128"),
            _param("amount0", "uint256"),
            _param("amount1", "uint256"),
        ],
    },
    {
        "type": "event",
        "name": "Collect",
        "anonymous": False,
        "inputs": [
            _param("owner", "address", indexed=True),
            _param("recipient", "address"),
            _param("tickLower", "int24", indexed=True),
            _param("tickUpper", "int24", indexed=True),
            _param("amount0", "uint128"),
            _param("amount1", "uint128"),
        ],
    },
    {
        "type": "event",
        "name": "Swap",
        "anonymous": False,
        "inputs": [
            _param("sender", "address", indexed=True),
            _param("recipient", "address", indexed=True),
            _param("amount0", "int256"),
            _param("amount1", "int256"),
            _param("sqrtPriceX96", "uint160"),
            _param("liquidity", "uint128"),
            _param("tick", "int24"),
        ],
    },
]

CALLEE_ABI = [
    {
        "type": "function",
        "name": "mint",
        "stateMutability": "nonpayable",
        "inputs": [
            _input("pool", "address"),
            _input("recipient", "address"),
            _input("tickLower", "int24"),
            _input("tickUpper", "int24"),
            _input("amount", "uint128"),
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "burn",
        "stateMutability": "nonpayable",
        "inputs": [
            _input("pool", "address"),
            _input("tickLower", "int24"),
            _input("tickUpper", "int24"),
            _input("amount", "uint128"),
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "collect",
        "stateMutability": "nonpayable",
        "inputs": [
            _input("pool", "address"),
            _input("tickLower", "int24"),
            _input("tickUpper", "int24"),
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "swapExact0For1",
        "stateMutability": "nonpayable",
        "inputs": [
            _input("pool", "address"),
            _input("amount0In", "uint256"),
            _input("recipient", "address"),
            _input("sqrtPriceLimitX96", "uint160"),
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "swapExact1For0",
        "stateMutability": "nonpayable",
        "inputs": [
            _input("pool", "address"),
            _input("amount1In", "uint256"),
            _input("recipient", "address"),
            _input("sqrtPriceLimitX96", "uint160"),
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "multicall",
        "stateMutability": "nonpayable",
        "inputs": [_input("data", "bytes[]")],
        "outputs": [_input("results", "bytes[]")],
    },
    {
        "type": "event",
        "name": "MintCallback",
        "anonymous": False,
        "inputs": [
            _param("amount0Owed", "uint256"),
            _param("amount1Owed", "uint256"),
        ],
    },
]
