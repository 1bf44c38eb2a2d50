"""
Localized UI strings for bot cards and the web tab.

Bundles are keyed by language; lookups fall back to English.
"""
from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class Strings:
    """One localized string bundle."""
    # Bot conversation
    sign_in_card_text: str = "Sign in to Expert Finder to continue."
    sign_in_button_text: str = "Sign in"
    not_login_text: str = "You are not signed in. Please sign in and try again."
    sign_out_text: str = "You have been signed out."
    invalid_tenant: str = "Expert Finder is not available for your organization."
    error_message: str = "Sorry, something went wrong. Please try again."
    failed_to_update_profile: str = "We couldn't update your profile. Please try again."

    # Welcome and help
    welcome_text: str = "Welcome to Expert Finder!"
    welcome_card_content: str = "Find people in your organization by skills, interests and schools."
    help_message: str = "I didn't understand that. Here is what I can do for you:"
    search_title: str = "Search"
    search_welcome_card_content: str = "Find experts by their skills, interests or schools."
    my_profile_title: str = "My profile"
    my_profile_welcome_card_content: str = "View and update your own profile."

    # Search and profile cards
    search_card_content: str = "Search your organization for experts."
    search_task_module_title: str = "Search experts"
    edit_profile_title: str = "Edit profile"
    details_title: str = "Details"
    skills_title: str = "Skills"
    interest_title: str = "Interests"
    schools_title: str = "Schools"
    about_me_title: str = "About me"
    full_name_title: str = "Full name"
    none_text: str = "None"
    go_to_profile_title: str = "Go to profile"
    chat_title: str = "Chat"
    update_title: str = "Update"
    empty_profile_card_content: str = "Your profile is empty. Add details so colleagues can find you."
    validation_task_module_message: str = "Separate multiple values with a semicolon (;)."
    about_me_placeholder_text: str = "Tell others about yourself"
    interests_placeholder_text: str = "Your interests, separated by ;"
    schools_placeholder_text: str = "Your schools, separated by ;"
    skills_placeholder_text: str = "Your skills, separated by ;"
    default_card_content_me: str = "Type a name, skill, interest or school to search."

    # Web tab
    search_text_box_placeholder: str = "Search by skills, interests or schools"
    initial_search_result_message_body_text: str = "Select filters and type a keyword to search."
    initial_search_result_message_header_text: str = "Find the right experts"
    search_result_no_items_text: str = "No profiles matched your search."
    view_button_text: str = "View"
    max_user_profiles_error: str = "You can select up to 5 profiles."
    unauthorized_error_message: str = "Your session has expired. Please refresh."
    forbidden_error_message: str = "You don't have access to this page."
    general_error_message: str = "Something went wrong. Please try again later."
    refresh_link_text: str = "Refresh"

    def web_bundle(self) -> Dict[str, str]:
        """Strings served to the web tab's search page."""
        return {
            "searchTextBoxPlaceholder": self.search_text_box_placeholder,
            "initialSearchResultMessageBodyText": self.initial_search_result_message_body_text,
            "initialSearchResultMessageHeaderText": self.initial_search_result_message_header_text,
            "searchResultNoItemsText": self.search_result_no_items_text,
            "skillsTitle": self.skills_title,
            "interestTitle": self.interest_title,
            "schoolsTitle": self.schools_title,
            "viewButtonText": self.view_button_text,
            "maxUserProfilesError": self.max_user_profiles_error,
        }

    def error_bundle(self) -> Dict[str, str]:
        """Strings served to the web tab's error page."""
        return {
            "unauthorizedErrorMessage": self.unauthorized_error_message,
            "forbiddenErrorMessage": self.forbidden_error_message,
            "generalErrorMessage": self.general_error_message,
            "refreshLinkText": self.refresh_link_text,
        }


DEFAULT_LANGUAGE = "en"

STRING_BUNDLES: Dict[str, Strings] = {
    DEFAULT_LANGUAGE: Strings(),
}


def get_strings(locale: Optional[str] = None) -> Strings:
    """
    Return the bundle for a locale such as "en-US", falling back to English.
    """
    if locale:
        normalized = locale.replace("_", "-").lower()
        if normalized in STRING_BUNDLES:
            return STRING_BUNDLES[normalized]
        language = normalized.split("-")[0]
        if language in STRING_BUNDLES:
            return STRING_BUNDLES[language]
    return STRING_BUNDLES[DEFAULT_LANGUAGE]
