from contestbot.core import state_machine as sm
from contestbot.settings import settings


def welcome() -> str:
    return (
        f"👋 Welcome to {settings.CONTEST_NAME}! 🏏\n\n"
        "Your chance to win match tickets & unlock once-in-a-lifetime experiences starts now!\n\n"
        "Rules & Terms:\n"
        "* Each entry must be from a valid product purchase.\n"
        "* One entry per unique secret code.\n"
        "* Winners will be selected at random for match tickets, special access, and more.\n"
        "* Only users from India are eligible.\n"
        f"* Full details: {settings.TERMS_URL}\n\n"
        "🔒 We keep your information secure and use it only for contest participation and updates.\n\n"
        "If you agree to the terms and conditions, please enter your full name."
    )


EMAIL_ALREADY_REGISTERED = (
    "❌ This email is already registered with us. Please provide a different email address:"
)

INVALID_CODE = (
    "❌ Invalid scratch code. This code is not found in our system or has already been used. "
    "Please provide a valid scratch code:"
)

REGISTRATION_COMPLETE = (
    "🎉 Congratulations! Your registration is complete. Your details have been saved "
    "and the scratch code has been marked as used."
)

REGISTRATION_FAILED = "⚠️ Registration failed. Please try again or contact support."

TECHNICAL_ISSUE = "⚠️ Technical issue occurred. Please try again later."

# Per-step replies when a store/ledger call fails; the step is not advanced.
STEP_TECHNICAL_ISSUE = {
    sm.ASK_NAME: "⚠️ Sorry, there was an issue processing your name. Please try entering your full name again:",
    sm.ASK_EMAIL: "⚠️ Something went wrong while checking your email. Please try again later.",
    sm.ASK_CITY: "⚠️ Sorry, there was an issue processing your city. Please try entering your city name again:",
    sm.ASK_CODE: "⚠️ Something went wrong while checking your scratch code. Please try again later.",
}


def claim_uncertain(code: str) -> str:
    return f"⚠️ Registration encountered an issue. Please contact support with your code: {code}"


def winner_text(name: str, code: str, city: str) -> str:
    contest = settings.CONTEST_NAME
    return (
        f"🎉 *CONGRATULATIONS {name}!* 🎉\n\n"
        f"🏆 You're a WINNER in the {contest} contest!\n\n"
        "✅ *Your Winner Details:*\n"
        f"👤 Name: {name}\n"
        f"🎫 Winning Code: *{code}*\n"
        f"🏙️ City: {city}\n\n"
        "🎯 *What's Next?*\n"
        "Please contact us as soon as possible to claim your prize. "
        "Keep your winning code safe as you'll need it for verification.\n\n"
        f"Thank you for participating in {contest}! 🏏\n\n"
        f"*Best regards,*\n{contest} Team"
    )


def winner_email_subject() -> str:
    return f"🎉 Congratulations! You're a Winner - {settings.CONTEST_NAME}"
