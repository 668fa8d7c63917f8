import os

# Must run before medibook.config is imported: settings are read once.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["API_KEY"] = ""
os.environ["ADMIN_TOKEN"] = "admin-secret"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["DRY_RUN"] = "true"
os.environ["UTC_OFFSET"] = "+05:30"
os.environ["SLOT_MINUTES"] = "30"
os.environ["REQUIRE_OTP_ON_REGISTER"] = "false"
for _name in (
    "SMTP_HOST", "SMTP_USER", "SMTP_PASS", "FROM_EMAIL",
    "GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET", "GOOGLE_REFRESH_TOKEN", "GCAL_SA_JSON",
    "TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN", "TWILIO_SMS_FROM",
):
    os.environ[_name] = ""
