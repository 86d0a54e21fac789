import datetime as dt
from typing import Annotated

from pydantic import PlainSerializer

from tucancha.utils.time_slots import format_hhmm

HourMinute = Annotated[dt.time, PlainSerializer(format_hhmm, return_type=str)]
