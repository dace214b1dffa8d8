"""Market data API endpoints"""
from typing import List

from fastapi import APIRouter, Depends

from papertrade.api.deps import get_quote_source
from papertrade.execution.quotes import QuoteSource
from papertrade.schemas.common import ApiResponse
from papertrade.schemas.trading import QuoteResponse

router = APIRouter()


@router.get("/quotes", response_model=ApiResponse[List[QuoteResponse]])
async def get_quotes(quotes: QuoteSource = Depends(get_quote_source)):
    """
    Current quotes for every supported symbol
    """
    return ApiResponse(data=[QuoteResponse.model_validate(q) for q in await quotes.get_quotes()])


@router.get("/quotes/{symbol}", response_model=ApiResponse[QuoteResponse])
async def get_quote(symbol: str, quotes: QuoteSource = Depends(get_quote_source)):
    """
    Current quote for one symbol
    """
    return ApiResponse(data=QuoteResponse.model_validate(await quotes.get_quote(symbol)))
