from typing import List, TypedDict

# "from" is a keyword, so the payload uses the functional TypedDict form
ResendSendParams = TypedDict(
    "ResendSendParams",
    {
        "from": str,
        "to": List[str],
        "subject": str,
        "html": str,
        "text": str,
    },
    total=False,
)


class ResendSendResult(TypedDict):
    id: str
