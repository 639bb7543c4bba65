"""Dashboard routers."""
