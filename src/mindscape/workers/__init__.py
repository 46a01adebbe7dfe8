"""arq workers."""
