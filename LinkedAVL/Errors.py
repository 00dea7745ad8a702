class AVLError(Exception):
    """Base class for every error raised by LinkedAVL."""


class AVLContractError(AVLError, AssertionError):
    """
    A primitive was called outside its contract (e.g. the balance factor of
    an absent node). Raised from compiled code, so only constant messages.
    """


class InvariantError(AVLError):
    """
    A linked tree violates one of the AVL invariants.

    :param message: Human readable description of the violation
    :param code: One of the ``VIOLATION_*`` codes from ``LinkedAVL.Validate``
    :param index: Index of the offending node (0 for the tree as a whole)
    """

    def __init__(self, message: str, code: int, index: int) -> None:
        super().__init__(message)
        self.code  = code
        self.index = index
