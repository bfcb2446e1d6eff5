"""Built-in dataset used on first run or when the local store is unreadable."""

from typing import List

from .models import AppConfig, Department, User, UserRole

# Screens a role can be granted
SCREENS = [
    "dashboard",
    "lmra",
    "nok",
    "kickoff",
    "reports",
    "library",
    "profile",
    "users",
    "settings",
]


def default_config() -> AppConfig:
    """Return a fresh copy of the default application configuration."""
    return AppConfig(
        app_name="VCA BEL",
        logo_url="https://cdn-icons-png.flaticon.com/512/1162/1162456.png",
        record_questions=[
            "Weet ik precies wat ik moet doen?",
            "Zijn de risico's van de werkplek bekend?",
            "Draag ik de juiste PBM's?",
            "Is het gereedschap in goede staat?",
            "Zijn vluchtwegen en nooduitgangen vrij?",
            "Is er voldoende verlichting?",
            "Ben ik fit en gezond om de taak uit te voeren?",
        ],
        meeting_topics=[
            "LMRA procedures",
            "Werfreglement",
            "Noodplan",
            "Specifieke risico's",
            "PBM inspectie",
        ],
        departments=[d.value for d in Department],
        permissions={
            UserRole.ADMIN.value: list(SCREENS),
            UserRole.PREVENTIE_ADVISEUR.value: list(SCREENS),
            UserRole.WERFLEIDER.value: list(SCREENS),
            UserRole.PROJECT_MANAGER.value: [
                "dashboard",
                "lmra",
                "kickoff",
                "reports",
                "profile",
            ],
            UserRole.PROJECT_ASSISTENT.value: [
                "dashboard",
                "lmra",
                "kickoff",
                "profile",
            ],
            UserRole.TECHNIEKER.value: [
                "dashboard",
                "lmra",
                "kickoff",
                "library",
                "profile",
            ],
        },
    )


def default_users() -> List[User]:
    """Return the seed accounts.

    Seed accounts carry timestamp 0 so any copy pulled from a workspace wins.
    """
    return [
        User(
            id="admin1",
            name="Jorik Admin",
            email="jorik@vcabel.be",
            username="jorik",
            role=UserRole.ADMIN,
            department=Department.GENERAL,
        ),
        User(
            id="mod1",
            name="Werner Werf",
            email="werner@vcabel.be",
            username="moderator",
            role=UserRole.WERFLEIDER,
            department=Department.GENERAL,
        ),
        User(
            id="pm1",
            name="Mark Manager",
            email="mark@projects.be",
            username="mark",
            role=UserRole.PROJECT_MANAGER,
            department=Department.TELECOM,
        ),
        User(
            id="ext1",
            name="John Extern",
            email="john@contractor.com",
            username="john",
            role=UserRole.TECHNIEKER,
            department=Department.LAAGSPANNING,
            is_external=True,
        ),
        User(
            id="u1",
            name="Eddy Verhoeven",
            email="eddy@techniek.be",
            username="eddy",
            role=UserRole.TECHNIEKER,
            department=Department.LAAGSPANNING,
        ),
    ]
