from .reader import PoolStateReader, token_side, tracked_is_token0

__all__ = ["PoolStateReader", "token_side", "tracked_is_token0"]
