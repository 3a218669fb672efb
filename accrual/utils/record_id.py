"""
Deposit record id generation.

Ids are keccak-256 digests over a domain separator, the owner,
the owner's deposit sequence number and the deposit time.
"""

from eth_utils import keccak, to_bytes, to_hex


def generate_record_id(
    account: str, sequence: int, timestamp: int, domain: str
) -> str:
    """
    Derive a record id.

    Args:
        account: Checksummed owner address
        sequence: Owner's deposit counter at creation
        timestamp: Deposit time (unix seconds)
        domain: Domain separator

    Returns:
        0x-prefixed 32-byte hex string
    """
    payload = (
        keccak(text=domain)
        + to_bytes(hexstr=account)
        + sequence.to_bytes(32, "big")
        + timestamp.to_bytes(32, "big")
    )
    return to_hex(keccak(payload))
