# services/errors.py


class VehicleBooksError(Exception):
    """Base class for errors the UI shows to the user as-is."""


class ValidationError(VehicleBooksError):
    pass


class NotFoundError(VehicleBooksError):
    pass


class InvalidTransitionError(VehicleBooksError):
    def __init__(self, chassis_no: str, current: str, target: str):
        self.chassis_no = chassis_no
        self.current = current
        self.target = target
        super().__init__(f"Vehicle {chassis_no} cannot move from '{current}' to '{target}'.")
