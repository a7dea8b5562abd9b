from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class Transfer:
    destination: str
    description: str

    def as_destination(self) -> Dict:
        return {
            "type": "assistant",
            "assistantName": self.destination,
            "message": "",
            "description": self.description,
            "transferMode": "swap-system-message-in-history",
        }


SEARCH_TRANSFER = Transfer(
    destination="Wanda_Search",
    description=(
        "When the user mentions any intention of finding a place to eat, searching the map, "
        "or looking for a location, transfer them immediately.\n\n"
        'Examples of user responses: "I want to find a place to eat", "I\'m looking for a restaurant", '
        '"Can you help me find a location", "I wanna search the map."'
    ),
)

PROFILE_TRANSFER = Transfer(
    destination="Wanda_Profile",
    description=(
        "When the user mentions any intention of updating their profile, preferences, or settings, "
        "transfer them immediately.\n\n"
        'Examples of user responses: "I want to update my profile", "Can you help me change my preferences", '
        '"I need to adjust my settings", "I wanna modify my account information."'
    ),
)

REVIEW_TRANSFER = Transfer(
    destination="Wanda_Review",
    description=(
        "When the user mentions any intention of reviewing a place, sharing feedback, or discussing "
        "their experience, transfer them immediately.\n\n"
        'Examples of user responses: "I want to review a place", "Can you help me share my feedback", '
        '"I need to discuss my experience", "I wanna talk about a location."'
    ),
)
