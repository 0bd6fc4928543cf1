"""Question answering over a folder of PDF documents.

PDF pages are chunked, embedded and stored in a Chroma collection; questions
are answered by a streamed chat model conditioned on the best-matching
chunks and the recent conversation.
"""

__version__ = "0.1.0"
