"""Seed roles and their default permission sets"""

# name -> (display name, description, sort order, is_default)
ROLE_DEFINITIONS = {
    "user": ("User", "Standard user with restricted rights", 1, True),
    "junior_advisor": ("Junior Advisor", "Advisor with restricted advisor rights", 2, False),
    "advisor": ("Advisor", "Full advisor with extensive rights", 3, False),
    "admin": ("Administrator", "Full access to the system", 4, False),
}

DEFAULT_ROLE_PERMISSIONS = {
    "user": [
        "dashboard.user.read",
        "profile.read",
        "profile.update",
        "bookings.own.read",
        "bookings.own.create",
        "bookings.own.update",
        "todos.own.read",
        "todos.own.update",
        "documents.own.read",
        "documents.own.create",
        "packages.read",
        "timeslots.read",
        "contact_form.create",
    ],
    "advisor": [
        "dashboard.read",
        "leads.read",
        "leads.create",
        "leads.update",
        "leads.own.manage",
        "bookings.read",
        "bookings.create",
        "bookings.update",
        "calendar.own.manage",
        "timeslots.read",
        "timeslots.own.manage",
        "todos.create",
        "todos.update",
        "todos.read",
        "documents.read",
        "documents.create",
        "contact_forms.read",
        "contact_forms.update",
        "users.read",
        "packages.read",
        "profile.read",
        "profile.update",
    ],
    "junior_advisor": [
        "dashboard.read",
        "leads.read",
        "leads.own.update",
        "bookings.read",
        "calendar.own.read",
        "timeslots.read",
        "timeslots.own.read",
        "todos.read",
        "documents.read",
        "contact_forms.read",
        "users.read",
        "packages.read",
        "profile.read",
        "profile.update",
    ],
    "admin": [
        # Root wildcard: every action on every resource
        "*.manage",
    ],
}

PERMISSION_DESCRIPTIONS = {
    "*.manage": "Full access to everything",
    "dashboard.read": "Access the dashboard",
    "dashboard.admin.read": "Access the admin dashboard",
    "dashboard.user.read": "Access the user dashboard",
    "users.read": "View users",
    "users.create": "Create users",
    "users.update": "Edit users",
    "users.delete": "Delete users",
    "users.manage": "Full access to user management",
    "profile.read": "View own profile",
    "profile.update": "Edit own profile",
    "leads.read": "View leads",
    "leads.create": "Create leads",
    "leads.update": "Edit leads",
    "leads.delete": "Delete leads",
    "leads.own.read": "View own leads",
    "leads.own.update": "Edit own leads",
    "leads.own.manage": "Full access to own leads",
    "leads.all.read": "View all leads",
    "leads.all.manage": "Full access to all leads",
    "bookings.read": "View bookings",
    "bookings.create": "Create bookings",
    "bookings.update": "Edit bookings",
    "bookings.delete": "Delete bookings",
    "bookings.own.read": "View own bookings",
    "bookings.own.create": "Create own bookings",
    "bookings.own.update": "Edit own bookings",
    "packages.read": "View packages",
    "packages.manage": "Full access to packages",
    "calendar.own.read": "View own calendar",
    "calendar.own.manage": "Full access to own calendar",
    "timeslots.read": "View timeslots",
    "timeslots.own.read": "View own timeslots",
    "timeslots.own.manage": "Full access to own timeslots",
    "todos.read": "View todos",
    "todos.create": "Create todos",
    "todos.update": "Edit todos",
    "todos.own.read": "View own todos",
    "todos.own.update": "Edit own todos",
    "documents.read": "View documents",
    "documents.create": "Upload documents",
    "documents.own.read": "View own documents",
    "documents.own.create": "Upload own documents",
    "contact_forms.read": "View contact forms",
    "contact_forms.update": "Edit contact forms",
    "contact_form.create": "Send a contact form",
    "settings.read": "View settings",
    "settings.update": "Edit settings",
    "settings.system.manage": "Manage system settings",
    "settings.security.manage": "Manage security settings",
    "payments.read": "View payments",
    "payments.manage": "Manage payments",
    "permissions.read": "View roles and permissions",
    "permissions.manage": "Manage roles and user permission overrides",
}
