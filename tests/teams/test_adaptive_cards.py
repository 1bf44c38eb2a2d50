"""
Tests for Expert Finder adaptive cards.
"""
import pytest

from expert_finder.api.teams.adaptive_cards import (
    ADAPTIVE_CARD_CONTENT_TYPE,
    THUMBNAIL_CARD_CONTENT_TYPE,
    create_edit_profile_card,
    create_messaging_extension_cards,
    create_my_profile_card,
    create_search_card,
    create_user_detail_card,
    create_welcome_card,
    join_profile_values,
    split_profile_values,
    to_attachment,
    to_messaging_extension_attachment,
)
from expert_finder.models import ProfileRecord, UserProfile
from expert_finder.resources import get_strings

STRINGS = get_strings()


def _profile(**overrides):
    values = dict(
        id="user-1",
        display_name="Ada Lovelace",
        job_title="Engineer",
        about_me="Analytical engines",
        skills=["math", "poetry"],
        interests=[],
        schools=["London"],
    )
    values.update(overrides)
    return UserProfile(**values)


def _inputs(card):
    return {
        item["id"]: item
        for item in card["content"]["body"][0]["items"]
        if item.get("type") == "Input.Text"
    }


class TestProfileValues:

    @pytest.mark.parametrize("values", [["a"], ["a", "b c", "d"], ["python", "rust"]])
    def test_join_then_split(self, values):
        assert split_profile_values(join_profile_values(values)) == values

    def test_split_drops_empty_segments(self):
        assert split_profile_values(";a;;b;") == ["a", "b"]

    def test_split_empty(self):
        assert split_profile_values("") == []
        assert split_profile_values(None) == []

    def test_join_empty_uses_placeholder(self):
        assert join_profile_values([]) == STRINGS.none_text


def test_welcome_card_has_logo_and_commands():
    card = create_welcome_card("https://app.example.com", STRINGS)

    assert card["contentType"] == ADAPTIVE_CARD_CONTENT_TYPE
    logo = card["content"]["body"][0]["columns"][0]["items"][0]
    assert logo["url"] == "https://app.example.com/Artifacts/appLogo.png"
    commands = [action["data"]["command"] for action in card["content"]["actions"]]
    assert commands == ["SEARCH", "MY PROFILE"]


def test_search_card_opens_task_module():
    action = create_search_card(STRINGS)["content"]["actions"][0]

    assert action["data"]["msteams"] == {"type": "task/fetch"}
    assert action["data"]["command"] == "SEARCH"


def test_my_profile_card_carries_card_id():
    card = create_my_profile_card(_profile(), "card-1", STRINGS)

    edit, details = card["content"]["actions"]
    assert edit["data"]["MyProfileCardId"] == "card-1"
    assert edit["data"]["command"] == "MY PROFILE"
    texts = [block["text"] for block in details["card"]["body"]]
    assert "math;poetry" in texts
    assert STRINGS.none_text in texts


def test_edit_profile_card_prefills_inputs():
    card = create_edit_profile_card(_profile(), "card-1", "https://app.example.com", STRINGS)

    inputs = _inputs(card)
    assert inputs["aboutme"]["value"] == "Analytical engines"
    assert inputs["aboutme"]["maxLength"] == 300
    assert inputs["skills"]["value"] == "math;poetry"
    assert inputs["interests"]["value"] == ""
    assert inputs["interests"]["placeholder"] == STRINGS.interests_placeholder_text
    assert split_profile_values(inputs["interests"]["value"]) == []
    assert inputs["schools"]["maxLength"] == 200
    assert card["content"]["actions"][0]["data"] == {"command": "MY PROFILE", "MyProfileCardId": "card-1"}


def test_user_detail_card_links():
    record = ProfileRecord(
        preferred_name="Ada",
        work_email="ada@contoso.com",
        path="https://contoso-my.sharepoint.com/person.aspx?user=ada",
    )

    chat, details = create_user_detail_card(record, STRINGS)["content"]["actions"]

    assert chat["url"] == "https://teams.microsoft.com/l/chat/0/0?users=ada@contoso.com"
    assert details["card"]["actions"][0]["url"].endswith("&v=profiledetails")


def test_messaging_extension_preview_shows_searched_field():
    records = [ProfileRecord(preferred_name="Ada", job_title="Engineer", skills="math", schools="London")]

    (detail, preview), = create_messaging_extension_cards(records, "schools", STRINGS)
    attachment = to_messaging_extension_attachment(detail, preview)

    assert preview["contentType"] == THUMBNAIL_CARD_CONTENT_TYPE
    assert preview["content"]["text"] == "London"
    assert attachment["contentType"] == ADAPTIVE_CARD_CONTENT_TYPE
    assert attachment["preview"] is preview


def test_to_attachment():
    attachment = to_attachment(create_search_card(STRINGS))

    assert attachment.content_type == ADAPTIVE_CARD_CONTENT_TYPE
    assert attachment.content["type"] == "AdaptiveCard"
