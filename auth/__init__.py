"""auth/ -- Session lifecycle and authorization package for movie-session.

Layer rule: auth/ imports from core/ and storage/ only.
main.py imports from auth/, not the other way around.
"""
