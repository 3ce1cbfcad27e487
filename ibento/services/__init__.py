"""Services Layer — one store call per operation, driver errors mapped to IbentoError."""
