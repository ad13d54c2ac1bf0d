"""Strongly typed identifiers for vote engine entities.

Using NewType for strong typing prevents mixing up a voter key with an
item id, which are both plain strings on the wire.
"""

from typing import NewType
from uuid import UUID

# Voter identity key derived from the display name (see derive_voter_key)
VoterKey = NewType("VoterKey", str)

# Stable id of the candidate being voted on
ItemId = NewType("ItemId", str)

VoteId = NewType("VoteId", UUID)
