from fastapi import Request

from ..services.aggregator import ContributionAggregator


def get_aggregator(request: Request) -> ContributionAggregator:
    """The process-wide aggregator created in the app lifespan."""
    return request.app.state.aggregator
