class KeymazeError(Exception):
    """Base class for errors raised by the maze agent."""


class MapInconsistencyError(KeymazeError):
    """New vision contradicts a cell kind already stored in the map.

    The maze never changes on its own, so this means either the environment
    or the map-building logic is broken. Never patched over.
    """

    def __init__(self, coord: tuple[int, int], stored, reported):
        self.coord = coord
        self.stored = stored
        self.reported = reported
        super().__init__(
            f"Expected {stored.name} at {coord[0]},{coord[1]} but vision reported {reported.name}"
        )


class RouteIntegrityError(KeymazeError):
    """Consecutive cells of a route are not grid-adjacent."""
