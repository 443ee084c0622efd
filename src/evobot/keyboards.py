from __future__ import annotations

from .transport import Button, Keyboard, keyboard

CANCEL_TEXT = "❌ Cancel"
CONFIRM_TEXT = "✅ Confirm"
BACK_TEXT = "◀️ Back"

# profile wizard callbacks share the "profile_" prefix
PROFILE_PREFIX = "profile_"
PROFILE_EDIT_MENU = "profile_edit_my_profile"
PROFILE_EDIT_FIRSTNAME = "profile_edit_firstname"
PROFILE_EDIT_LASTNAME = "profile_edit_lastname"
PROFILE_EDIT_BIO = "profile_edit_bio"
PROFILE_SEARCH = "profile_search"
PROFILE_BACK_TO_MAIN = "profile_back_to_main"
PROFILE_CANCEL = "profile_full_cancel"

ADMIN_PROFILES_SEARCH_USERNAME = "admin_profiles_search_username"
ADMIN_PROFILES_SEARCH_TG_ID = "admin_profiles_search_tg_id"
ADMIN_PROFILES_SEARCH_FULL_NAME = "admin_profiles_search_full_name"
ADMIN_PROFILES_CREATE_FORWARD = "admin_profiles_create_forward"
ADMIN_PROFILES_CREATE_TG_ID = "admin_profiles_create_tg_id"
ADMIN_PROFILES_EDIT_FIRSTNAME = "admin_profiles_edit_firstname"
ADMIN_PROFILES_EDIT_LASTNAME = "admin_profiles_edit_lastname"
ADMIN_PROFILES_EDIT_USERNAME = "admin_profiles_edit_username"
ADMIN_PROFILES_EDIT_BIO = "admin_profiles_edit_bio"
ADMIN_PROFILES_EDIT_COFFEE = "admin_profiles_edit_coffee"
ADMIN_PROFILES_TOGGLE_COFFEE = "admin_profiles_toggle_coffee"
ADMIN_PROFILES_PUBLISH = "admin_profiles_publish"
ADMIN_PROFILES_PUBLISH_NO_PREVIEW = "admin_profiles_publish_no_preview"
ADMIN_PROFILES_BACK_TO_MAIN = "admin_profiles_back_to_main"
ADMIN_PROFILES_BACK_TO_PROFILE = "admin_profiles_back_to_profile"
ADMIN_PROFILES_CANCEL = "admin_profiles_cancel"


def cancel_keyboard(callback_data: str) -> Keyboard:
    return keyboard(Button(CANCEL_TEXT, callback_data=callback_data))


def confirm_cancel_keyboard(confirm_data: str, cancel_data: str) -> Keyboard:
    return keyboard(
        [
            Button(CONFIRM_TEXT, callback_data=confirm_data),
            Button(CANCEL_TEXT, callback_data=cancel_data),
        ]
    )


def back_cancel_keyboard(back_data: str, cancel_data: str) -> Keyboard:
    return keyboard(
        [
            Button(BACK_TEXT, callback_data=back_data),
            Button(CANCEL_TEXT, callback_data=cancel_data),
        ]
    )


def link_keyboard(text: str, url: str) -> Keyboard:
    return keyboard(Button(text, url=url))


def profile_main_keyboard() -> Keyboard:
    return keyboard(
        Button("✏️ Edit", callback_data=PROFILE_EDIT_MENU),
        Button("🔎 Search profile by name/username", callback_data=PROFILE_SEARCH),
        Button(CANCEL_TEXT, callback_data=PROFILE_CANCEL),
    )


def profile_edit_keyboard() -> Keyboard:
    return keyboard(
        [
            Button("👤 First Name", callback_data=PROFILE_EDIT_FIRSTNAME),
            Button("👤 Last Name", callback_data=PROFILE_EDIT_LASTNAME),
            Button("📝 Bio", callback_data=PROFILE_EDIT_BIO),
        ],
        [
            Button(BACK_TEXT, callback_data=PROFILE_BACK_TO_MAIN),
            Button(CANCEL_TEXT, callback_data=PROFILE_CANCEL),
        ],
    )


def profile_back_cancel_keyboard(back_data: str = PROFILE_BACK_TO_MAIN) -> Keyboard:
    return back_cancel_keyboard(back_data, PROFILE_CANCEL)


def admin_profiles_main_keyboard() -> Keyboard:
    return keyboard(
        Button("📝 Search by Telegram Username", callback_data=ADMIN_PROFILES_SEARCH_USERNAME),
        Button("🔍 Search by Telegram ID", callback_data=ADMIN_PROFILES_SEARCH_TG_ID),
        Button("🔍 Search by full name", callback_data=ADMIN_PROFILES_SEARCH_FULL_NAME),
        Button("➕ Create profile (via forward)", callback_data=ADMIN_PROFILES_CREATE_FORWARD),
        Button("🆔 Create profile by Telegram ID", callback_data=ADMIN_PROFILES_CREATE_TG_ID),
        Button(CANCEL_TEXT, callback_data=ADMIN_PROFILES_CANCEL),
    )


def admin_profiles_edit_keyboard() -> Keyboard:
    return keyboard(
        [
            Button("👤 First Name", callback_data=ADMIN_PROFILES_EDIT_FIRSTNAME),
            Button("👤 Last Name", callback_data=ADMIN_PROFILES_EDIT_LASTNAME),
            Button("👤 Username", callback_data=ADMIN_PROFILES_EDIT_USERNAME),
        ],
        [
            Button("📝 Bio", callback_data=ADMIN_PROFILES_EDIT_BIO),
            Button("☕️ Coffee?", callback_data=ADMIN_PROFILES_EDIT_COFFEE),
        ],
        [
            Button("📢 Publish (+ preview)", callback_data=ADMIN_PROFILES_PUBLISH),
            Button("📢 Publish (- preview)", callback_data=ADMIN_PROFILES_PUBLISH_NO_PREVIEW),
        ],
        [
            Button(BACK_TEXT, callback_data=ADMIN_PROFILES_BACK_TO_MAIN),
            Button(CANCEL_TEXT, callback_data=ADMIN_PROFILES_CANCEL),
        ],
    )


def admin_profiles_back_cancel_keyboard(
    back_data: str = ADMIN_PROFILES_BACK_TO_PROFILE,
) -> Keyboard:
    return back_cancel_keyboard(back_data, ADMIN_PROFILES_CANCEL)


def admin_profiles_coffee_keyboard(has_coffee_ban: bool) -> Keyboard:
    toggle = "✅ Allow" if has_coffee_ban else "❌ Ban"
    return keyboard(
        Button(toggle, callback_data=ADMIN_PROFILES_TOGGLE_COFFEE),
        [
            Button(BACK_TEXT, callback_data=ADMIN_PROFILES_BACK_TO_PROFILE),
            Button(CANCEL_TEXT, callback_data=ADMIN_PROFILES_CANCEL),
        ],
    )
