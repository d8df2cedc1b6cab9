from fitio._types.base import DataFrameSubclass, SeriesSubclass, series_property
from fitio._types import columns as special_columns
from fitio._types.activitydata import ActivityData
