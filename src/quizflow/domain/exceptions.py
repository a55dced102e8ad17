class StoreError(Exception):
    """Raised by durable store adapters when a read or write cannot complete."""

    def __init__(self, operation: str, message: str):
        super().__init__(f"{operation}: {message}")
        self.operation = operation
