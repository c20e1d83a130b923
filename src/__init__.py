"""
gofer - a Gopher helper for web browsers

A local HTTP gateway that lets an ordinary web browser browse Gopher
directories, text, binaries, CSO/PH phone books and index searches.
"""

__version__ = "0.5.0"
__description__ = "Gopher-to-HTTP gateway for web browsers"
