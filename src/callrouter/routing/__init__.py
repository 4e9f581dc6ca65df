"""
Inbound call routing: rule matching and action dispatch.
"""

from callrouter.routing.actions import (
    Action,
    ForwardAIAgentAction,
    ForwardNumberAction,
    HangupAction,
    PlayMessageAction,
    UnknownAction,
    VoicemailAction,
    parse_action,
)
from callrouter.routing.context import DefaultContextBuilder, RoutingContext, RoutingContextBuilder
from callrouter.routing.dispatcher import ActionDispatcher
from callrouter.routing.domain import AIProvider, PhoneLine, RoutingRule, RuleCondition, Schedule
from callrouter.routing.matcher import RuleMatcher, TriggerCounter

__all__ = [
    "AIProvider",
    "Action",
    "ActionDispatcher",
    "DefaultContextBuilder",
    "ForwardAIAgentAction",
    "ForwardNumberAction",
    "HangupAction",
    "PhoneLine",
    "PlayMessageAction",
    "RoutingContext",
    "RoutingContextBuilder",
    "RoutingRule",
    "RuleCondition",
    "RuleMatcher",
    "Schedule",
    "TriggerCounter",
    "UnknownAction",
    "VoicemailAction",
    "parse_action",
]
