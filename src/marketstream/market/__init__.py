from marketstream.market.aggregation import aggregate_ticks, merge_candles, parse_candle
from marketstream.market.candles import CandleAssembler

__all__ = ["CandleAssembler", "aggregate_ticks", "merge_candles", "parse_candle"]
