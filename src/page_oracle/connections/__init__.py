from .resolver import (
    TRANSPORT_ERRORS,
    Connection,
    ConnectionResolver,
    EndpointAttempt,
    EvmConnection,
    LcdConnection,
    open_evm_connection,
    open_lcd_connection,
)

__all__ = [
    "TRANSPORT_ERRORS",
    "Connection",
    "ConnectionResolver",
    "EndpointAttempt",
    "EvmConnection",
    "LcdConnection",
    "open_evm_connection",
    "open_lcd_connection",
]
