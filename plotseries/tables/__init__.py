from plotseries.tables.tall import TallRecord, to_tall
from plotseries.tables.wide import WideRow, merge_same_day, pivot, to_wide

__all__ = ['TallRecord', 'to_tall', 'WideRow', 'merge_same_day', 'pivot', 'to_wide']
