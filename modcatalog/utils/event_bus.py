from typing import Self

from PySide6.QtCore import QObject, Signal


class EventBus(QObject):
    """
    Singleton event bus to manage application-wide signals using Qt's signal-slot mechanism.

    Scan notifications are one-way: the scan worker emits them and never
    waits for, or learns about, any receiver.

    Examples:
        >>> event_bus = EventBus()
        >>> event_bus.scan_progress.connect(some_slot_function)

    Notes:
        Since this is a singleton class, multiple instantiations will return the same object.
    """

    _instance: None | Self = None

    # Scan signals
    scan_progress = Signal(object)  # ScanProgress
    scan_finished = Signal(object)  # ScanSummary
    scan_error = Signal(str)

    # Catalog signals
    catalog_changed = Signal()

    def __new__(cls) -> "EventBus":
        """
        Create a new instance or return the existing singleton instance of the `EventBus` class.

        Returns:
            EventBus: The singleton instance of the `EventBus` class.
        """
        if cls._instance is None:
            cls._instance = super(EventBus, cls).__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        """
        Initialize the `EventBus` instance.
        """
        if hasattr(self, "_is_initialized") and self._is_initialized:
            return
        super().__init__()
        self._is_initialized: bool = True
