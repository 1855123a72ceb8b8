"""Service layer exception classes for Category Tree.

This module defines the exceptions raised by the service layer. Field-level
validation problems are not raised: they are accumulated on the data
objects' ``errors`` mapping and reported through a ``False`` return value.

Exception Hierarchy:
    ServiceError (base)
    ├── CategoryGroupNotFound
    ├── CategoryNotFound
    ├── ElementNotFound
    ├── StructureNotFound
    ├── StructureNodeNotFound
    ├── FieldLayoutNotFound
    ├── InvalidTreeOperation
    └── DatabaseError
"""


class ServiceError(Exception):
    """Base exception for all service layer errors.

    All service-specific exceptions should inherit from this class.
    """

    pass


class CategoryGroupNotFound(ServiceError):
    """Raised when a category group cannot be found by ID.

    Args:
        group_id: The category group ID that was not found

    Example:
        >>> raise CategoryGroupNotFound(12)
        CategoryGroupNotFound: No category group exists with the ID 12
    """

    def __init__(self, group_id: int):
        self.group_id = group_id
        super().__init__(f"No category group exists with the ID {group_id}")


class CategoryNotFound(ServiceError):
    """Raised when a category cannot be found by ID.

    Args:
        category_id: The category ID that was not found
    """

    def __init__(self, category_id: int):
        self.category_id = category_id
        super().__init__(f"No category exists with the ID {category_id}")


class ElementNotFound(ServiceError):
    """Raised when an element row cannot be found by ID."""

    def __init__(self, element_id: int):
        self.element_id = element_id
        super().__init__(f"No element exists with the ID {element_id}")


class StructureNotFound(ServiceError):
    """Raised when a structure cannot be found by ID."""

    def __init__(self, structure_id: int):
        self.structure_id = structure_id
        super().__init__(f"No structure exists with the ID {structure_id}")


class StructureNodeNotFound(ServiceError):
    """Raised when an element has no node in the given structure."""

    def __init__(self, structure_id: int, element_id: int):
        self.structure_id = structure_id
        self.element_id = element_id
        super().__init__(f"Element {element_id} is not part of structure {structure_id}")


class FieldLayoutNotFound(ServiceError):
    """Raised when a field layout cannot be found by ID."""

    def __init__(self, layout_id: int):
        self.layout_id = layout_id
        super().__init__(f"No field layout exists with the ID {layout_id}")


class InvalidTreeOperation(ServiceError):
    """Raised when a tree operation would corrupt the nested set.

    Example:
        >>> raise InvalidTreeOperation("Cannot move a node under its own descendant")
    """

    pass


class DatabaseError(ServiceError):
    """Raised when a database operation fails."""

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")
