from dataclasses import dataclass
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

# --- Directory search ---

class ProfileRecord(BaseModel):
    """One people-search row, as returned to the web tab and bot cards"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    preferred_name: Optional[str] = Field(None, alias="preferredName", description="Display name")
    job_title: Optional[str] = Field(None, alias="jobTitle")
    about_me: Optional[str] = Field(None, alias="aboutMe")
    skills: Optional[str] = Field(None, description="Free text, usually ';' separated")
    interests: Optional[str] = Field(None, description="Free text, usually ';' separated")
    schools: Optional[str] = Field(None, description="Free text, usually ';' separated")
    work_email: Optional[str] = Field(None, alias="workEmail")
    path: Optional[str] = Field(None, description="Link to the person's profile page")


class UserSearch(BaseModel):
    """Search request posted by the web tab"""
    search_text: str = Field(
        "", validation_alias=AliasChoices("searchText", "SearchText", "search_text")
    )
    search_filters: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("SearchFilters", "searchFilters", "search_filters"),
    )

    @field_validator("search_text", mode="before")
    @classmethod
    def null_text_to_empty(cls, value):
        return value or ""

    @field_validator("search_filters", mode="before")
    @classmethod
    def null_filters_to_empty(cls, value):
        return value or []


# --- Graph profile ---

class UserProfile(BaseModel):
    """Signed-in user's profile from Graph /me"""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    display_name: Optional[str] = Field(None, alias="displayName")
    job_title: Optional[str] = Field(None, alias="jobTitle")
    about_me: Optional[str] = Field(None, alias="aboutMe")
    skills: List[str] = Field(default_factory=list)
    interests: List[str] = Field(default_factory=list)
    schools: List[str] = Field(default_factory=list)

    @field_validator("skills", "interests", "schools", mode="before")
    @classmethod
    def null_to_empty(cls, value):
        return value or []


class UserProfileUpdate(BaseModel):
    """PATCH body for Graph /me. Lists are always sent, possibly empty."""
    model_config = ConfigDict(populate_by_name=True)

    about_me: Optional[str] = Field(None, alias="aboutMe")
    skills: List[str] = Field(default_factory=list)
    interests: List[str] = Field(default_factory=list)
    schools: List[str] = Field(default_factory=list)

    def to_graph_json(self) -> str:
        return self.model_dump_json(by_alias=True)


# --- Card submissions ---

class AdaptiveCardAction(BaseModel):
    """Data attached to card buttons and task module submits"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    command: Optional[str] = None
    my_profile_card_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("MyProfileCardId", "myProfileCardId")
    )


class EditProfileCardAction(AdaptiveCardAction):
    """Values submitted from the edit-profile task module"""
    about_me: Optional[str] = Field(None, validation_alias=AliasChoices("aboutMe", "aboutme"))
    interests: Optional[str] = None
    schools: Optional[str] = None
    skills: Optional[str] = None


class SearchSubmitAction(AdaptiveCardAction):
    """Profiles picked in the search task module"""
    searchresults: List[ProfileRecord] = Field(default_factory=list)

    @field_validator("searchresults", mode="before")
    @classmethod
    def null_results_to_empty(cls, value):
        return value or []


# --- Table storage ---

@dataclass
class ConversationActivityRecord:
    """Binds a rendered profile card to the message that carries it"""
    my_profile_card_id: str
    my_profile_card_activity_id: str
