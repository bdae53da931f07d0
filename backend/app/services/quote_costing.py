"""
Quote Costing Service

Margin per quote line and across the quote. Unit costs come from the same
catalog as the BOM rollup; an unknown IPN costs 0 (a 100% margin line).
A zero quote total gives a 0% margin rather than a division error.
"""
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Tuple

from app.logging_config import get_logger
from app.schemas.quote import Quote, QuoteLine, QuoteLineCosting, QuoteTotals
from app.services.costing import CostCatalog

logger = get_logger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
PERCENT_PLACES = Decimal("0.01")


def margin_percent(total: Decimal, margin: Decimal) -> Decimal:
    if total <= 0:
        return ZERO
    return (HUNDRED * margin / total).quantize(PERCENT_PLACES, rounding=ROUND_HALF_UP)


def cost_quote_line(line: QuoteLine, catalog: CostCatalog) -> QuoteLineCosting:
    unit_cost = catalog.unit_cost(line.ipn)
    line_total = line.qty * line.unit_price
    line_cost = line.qty * unit_cost
    line_margin = line_total - line_cost

    return QuoteLineCosting(
        ipn=line.ipn,
        description=line.description,
        qty=line.qty,
        unit_price=line.unit_price,
        unit_cost=unit_cost,
        cost_known=catalog.knows(line.ipn),
        line_total=line_total,
        line_cost=line_cost,
        line_margin=line_margin,
        margin_percent=margin_percent(line_total, line_margin),
        below_cost=line_margin < 0,
    )


def quote_totals(lines: Iterable[QuoteLineCosting]) -> QuoteTotals:
    total_quoted = ZERO
    total_cost = ZERO
    for line in lines:
        total_quoted += line.line_total
        total_cost += line.line_cost
    margin = total_quoted - total_cost
    return QuoteTotals(
        total_quoted=total_quoted,
        total_cost=total_cost,
        margin=margin,
        margin_percent=margin_percent(total_quoted, margin),
        below_cost=margin < 0,
    )


def cost_quote(quote: Quote, catalog: CostCatalog) -> Tuple[List[QuoteLineCosting], QuoteTotals]:
    lines = [cost_quote_line(line, catalog) for line in quote.lines]
    totals = quote_totals(lines)

    unknown = [line.ipn for line in lines if not line.cost_known]
    if unknown:
        logger.info(
            f"Quote {quote.id}: {len(unknown)} line(s) without a catalog cost",
            extra={"quote_id": quote.id, "ipns": unknown},
        )
    below = [line.ipn for line in lines if line.below_cost]
    if below:
        logger.info(
            f"Quote {quote.id}: {len(below)} line(s) priced below cost",
            extra={"quote_id": quote.id, "ipns": below},
        )
    return lines, totals
