"""Document-level options."""

import datetime
from dataclasses import dataclass
from enum import Enum

from openpyxl.utils.datetime import MAC_EPOCH, WINDOWS_EPOCH


class DateEpoch(Enum):
    """Serial date system used when dates are written as numbers.

    WINDOWS_1900 is the default date system of desktop spreadsheets and keeps
    the historical 1900 leap-year quirk (serial 60 is 1900-02-29). MAC_1904
    counts days from 1904-01-01.
    """
    WINDOWS_1900 = "1900"
    MAC_1904 = "1904"

    @property
    def origin(self) -> datetime.datetime:
        return WINDOWS_EPOCH if self is DateEpoch.WINDOWS_1900 else MAC_EPOCH


@dataclass
class DocumentOptions:
    """Options applied to a document when it is opened or created.

    Attributes:
        date_epoch: Date system for date/time values written to cells. A
            workbook loaded from a file keeps the file's own date system.
        default_sheet_name: Name of the sheet created by an empty ``new()``
    """
    date_epoch: DateEpoch = DateEpoch.WINDOWS_1900
    default_sheet_name: str = "Sheet1"
