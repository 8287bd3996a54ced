"""Target gap bot package.

Scans a fixed list of domestic stock codes on a cron schedule, reads each
quote page's current price, consensus target price and market cap, and posts
a Slack alert for stocks trading far enough below their target.  Codes with
no analyst coverage are remembered in a skip list that is cleared monthly.
"""

__all__: list[str] = []
