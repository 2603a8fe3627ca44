"""Abstract base class for import sources.

A source adapter turns third-party billing data into a SourceBatch of
typed rows. The reconciliation and import steps are shared by all
sources.

Based on Strategy Pattern:
https://refactoring.guru/design-patterns/strategy/python
"""

from abc import ABC, abstractmethod

from services.importer.schema import SourceBatch


class SourceFormatError(ValueError):
    """Raised when source data does not have the expected shape."""


class SourceAdapter(ABC):
    """Produces normalized invoice rows for one import run.

    Example implementations:
    - HarvestCsvSource: Harvest "All invoices" CSV report
    - HarvestApiSource: Harvest REST API v2
    """

    @abstractmethod
    async def load(self) -> SourceBatch:
        """Load and normalize all rows from the source.

        Returns:
            SourceBatch with rows in source order

        Raises:
            SourceFormatError: If the data is missing or malformed
        """
        pass

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Get source name for logging/metrics.

        Returns:
            Source identifier (e.g., 'harvest-csv')
        """
        pass
