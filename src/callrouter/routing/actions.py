"""
Routing rule actions.

Actions are stored as JSON on the rule. Known action types are parsed into
typed models; anything else (including types the engine does not execute,
such as ivr or queue) becomes UnknownAction and is routed like "no rule".
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError


class _ActionBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the stored (camelCase) field names."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ForwardNumberAction(_ActionBase):
    type: Literal["forward_number"] = "forward_number"
    target_number: str | None = Field(default=None, alias="targetNumber")


class ForwardAIAgentAction(_ActionBase):
    type: Literal["forward_ai_agent"] = "forward_ai_agent"
    ai_provider_id: str | None = Field(default=None, alias="aiProviderId")
    ai_assistant_id: str | None = Field(default=None, alias="aiAssistantId")


class VoicemailAction(_ActionBase):
    type: Literal["voicemail"] = "voicemail"
    greeting: str | None = Field(default=None, alias="voicemailGreeting")
    transcribe: bool | None = Field(default=None, alias="transcribeVoicemail")


class PlayMessageAction(_ActionBase):
    type: Literal["play_message"] = "play_message"
    message_url: str | None = Field(default=None, alias="messageUrl")
    message_text: str | None = Field(default=None, alias="messageText")


class HangupAction(_ActionBase):
    type: Literal["hangup"] = "hangup"


class UnknownAction(_ActionBase):
    type: str = ""


KnownAction = Annotated[
    Union[
        ForwardNumberAction,
        ForwardAIAgentAction,
        VoicemailAction,
        PlayMessageAction,
        HangupAction,
    ],
    Field(discriminator="type"),
]

Action = (
    ForwardNumberAction
    | ForwardAIAgentAction
    | VoicemailAction
    | PlayMessageAction
    | HangupAction
    | UnknownAction
)

_known_action_adapter: TypeAdapter[Any] = TypeAdapter(KnownAction)


def parse_action(data: Any) -> Action:
    """Parse a stored action; never raises."""
    if isinstance(data, _ActionBase):
        return data  # type: ignore[return-value]
    if not isinstance(data, dict):
        return UnknownAction(type=str(data or ""))
    try:
        return _known_action_adapter.validate_python(data)
    except ValidationError:
        return UnknownAction(type=str(data.get("type") or ""))
