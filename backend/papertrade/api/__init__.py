"""API router initialization"""
from fastapi import APIRouter
from papertrade.api.routes import market, trades, wallet

api_router = APIRouter()

api_router.include_router(trades.router, prefix="/trades", tags=["Trades"])
api_router.include_router(wallet.router, prefix="/wallet", tags=["Wallet"])
api_router.include_router(market.router, prefix="/market", tags=["Market"])
