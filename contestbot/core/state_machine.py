# Conversation steps, stored as the `step` field of a session hash.
# A missing/unknown step means "no session": the next message starts over.

# Waiting for the registrant's full name (welcome + terms already sent)
ASK_NAME = "ASK_NAME"

# Waiting for an email address not used by a completed registration
ASK_EMAIL = "ASK_EMAIL"

# Waiting for the registrant's city
ASK_CITY = "ASK_CITY"

# Waiting for an active scratch code; success ends the conversation
ASK_CODE = "ASK_CODE"

STEPS = (ASK_NAME, ASK_EMAIL, ASK_CITY, ASK_CODE)

# Written over a finished session that could not be deleted; not in STEPS,
# so it loads as no session.
COMPLETED = "COMPLETED"

# step -> session field captured by that step
FIELD_FOR_STEP = {
    ASK_NAME: "name",
    ASK_EMAIL: "email",
    ASK_CITY: "city",
    ASK_CODE: "code",
}

# step -> step that follows a valid answer (ASK_CODE is terminal)
NEXT_STEP = {
    ASK_NAME: ASK_EMAIL,
    ASK_EMAIL: ASK_CITY,
    ASK_CITY: ASK_CODE,
}


def is_known_step(step) -> bool:
    return step in STEPS
