"""toolrelay — remote tool invocation over an SSE push channel + POST request channel."""

__version__ = "1.0.0"
