"""Static catalog of coarse onboarding steps.

Order defines the wizard sequence; `is_required` decides what blocks
completion. Step ids are unique.
"""

from onboard.schemas.progress import StepTemplate


SEED_STEPS = [
    {
        "id": "welcome",
        "title": "Welcome",
        "description": "Welcome to YoFam family connection app",
        "is_required": True,
        "screen_ref": "Welcome",
        "icon": "hand-right",
        "order": 1,
    },
    {
        "id": "permissions",
        "title": "Permissions",
        "description": "Grant necessary permissions for the best experience",
        "is_required": True,
        "screen_ref": "PermissionsSetup",
        "icon": "shield-checkmark",
        "order": 2,
    },
    {
        "id": "profile_photo",
        "title": "Profile Photo",
        "description": "Add a profile photo to help others recognize you",
        "is_required": False,
        "screen_ref": "ProfilePhotoSetup",
        "icon": "camera",
        "order": 3,
    },
    {
        "id": "personal_details",
        "title": "Personal Details",
        "description": "Complete your basic profile information",
        "is_required": True,
        "screen_ref": "PersonalDetails",
        "icon": "person",
        "order": 4,
    },
    {
        "id": "family_tree",
        "title": "Family Tree",
        "description": "Set up your family connections",
        "is_required": False,
        "screen_ref": "FamilyTreeSetup",
        "icon": "git-network",
        "order": 5,
    },
    {
        "id": "interests",
        "title": "Interests & Hobbies",
        "description": "Tell us about your interests for better matching",
        "is_required": False,
        "screen_ref": "InterestsSetup",
        "icon": "heart",
        "order": 6,
    },
    {
        "id": "privacy_settings",
        "title": "Privacy Settings",
        "description": "Configure your privacy and visibility preferences",
        "is_required": True,
        "screen_ref": "PrivacySetup",
        "icon": "lock-closed",
        "order": 7,
    },
    {
        "id": "tutorial",
        "title": "App Tutorial",
        "description": "Learn how to use YoFam effectively",
        "is_required": False,
        "screen_ref": "AppTutorial",
        "icon": "help-circle",
        "order": 8,
    },
    {
        "id": "completion",
        "title": "Setup Complete",
        "description": "You're ready to start connecting!",
        "is_required": True,
        "screen_ref": "OnboardingComplete",
        "icon": "checkmark-circle",
        "order": 9,
    },
]

_STEPS: tuple[StepTemplate, ...] = tuple(
    sorted((StepTemplate(**s) for s in SEED_STEPS), key=lambda s: s.order)
)


def list_steps() -> list[StepTemplate]:
    """All step templates in wizard order."""
    return list(_STEPS)


def get_step_template(step_id: str, steps: list[StepTemplate] | None = None) -> StepTemplate | None:
    for template in steps if steps is not None else _STEPS:
        if template.id == step_id:
            return template
    return None
