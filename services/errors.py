class ServiceError(Exception):
    """Expected failure of a page/service call, carried to the client as an error envelope"""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
