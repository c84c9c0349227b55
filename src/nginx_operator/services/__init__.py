"""Remote services used by the Nginx Operator."""
