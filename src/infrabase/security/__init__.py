from .wireguard_keys import Keypair, generate_keypair

__all__ = ["Keypair", "generate_keypair"]
