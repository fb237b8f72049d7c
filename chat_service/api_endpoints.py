"""
REST API endpoints for the chat service
"""
from fastapi import Request

from chat_service.models import DirectoryStats


async def read_root():
    """Root endpoint"""
    return {"message": "Random chat matchmaking service is running."}


async def health():
    return {"status": "ok"}


async def debug_stats(request: Request) -> DirectoryStats:
    """Debug endpoint for queue and pairing counts"""
    return request.app.state.service_state.stats()
