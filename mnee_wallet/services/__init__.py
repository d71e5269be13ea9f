from .chains import CHAIN_METADATA, chain_name, explorer_tx_url, to_hex_chain_id
from .formatting import format_address, format_token_amount

__all__ = [
    "CHAIN_METADATA",
    "chain_name",
    "explorer_tx_url",
    "to_hex_chain_id",
    "format_address",
    "format_token_amount",
]
