"""HTTP and websocket transports."""
