"""
Transport layer - HTTP communication with the model server.
"""

from ollama_stream.transport.http import HttpTransport

__all__ = ["HttpTransport"]
