from .identity import AgentSigner, derive_identity, parse_private_key, verify_signature

__all__ = ["AgentSigner", "derive_identity", "parse_private_key", "verify_signature"]
