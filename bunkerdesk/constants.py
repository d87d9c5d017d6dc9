# Contact relationship status flags (column names on contacts)
CONTACT_STATUS_FIELDS = ["is_client", "has_traction", "is_jammed", "is_dead"]

# Contact priority ranks (0 is reserved for clients)
PRIORITY_RANKS = [0, 1, 2, 3, 4, 5]

PRIORITY_RANK_LABELS = {
    0: "Client (0)",
    1: "Highest (1)",
    2: "High (2)",
    3: "Medium (3)",
    4: "Low (4)",
    5: "Lowest (5)",
}

PRIORITY_RANK_COLORS = {
    0: "#16a34a",
    1: "#dc2626",
    2: "#f97316",
    3: "#eab308",
    4: "#3b82f6",
    5: "#6b7280",
}

# Phone types for contacts and contact persons
PHONE_TYPES = ["office", "mobile", "whatsapp", "wechat", "home", "fax", "other"]

# Company sizes
COMPANY_SIZE_OPTIONS = ["1-10", "11-50", "51-200", "201-500", "500+"]

# Call communication types
COMMUNICATION_TYPES = ["phone", "whatsapp", "wechat", "teams", "skype", "other"]

# Fuel grades offered on deals
FUEL_TYPES = [
    "VLSFO (Very Low Sulfur Fuel Oil)",
    "LSMGO (Low Sulfur Marine Gas Oil)",
    "MGO (Marine Gas Oil)",
    "HFO (Heavy Fuel Oil)",
    "HSFO (High Sulfur Fuel Oil)",
    "MDO (Marine Diesel Oil)",
    "IFO 180 (Intermediate Fuel Oil)",
    "IFO 380 (Intermediate Fuel Oil)",
    "LNG (Liquefied Natural Gas)",
    "Methanol",
]

# Task types
TASK_TYPE_OPTIONS = ["email_back", "call_back", "text_back", "other"]

# Task list filters
TASK_FILTER_OPTIONS = ["all", "pending", "completed"]

# Daily goal types
GOAL_TYPE_OPTIONS = ["calls", "emails", "deals"]

# Call schedule priority labels
PRIORITY_LABEL_OPTIONS = ["Warm", "Follow-Up", "High Value", "Cold"]

# Call schedule contact status
SCHEDULE_CONTACT_STATUS_OPTIONS = ["jammed", "traction", "client", "none"]

# Supplier order statuses
ORDER_STATUS_OPTIONS = ["pending", "confirmed", "delivered", "cancelled"]

# Contact list sorting
CONTACT_SORT_OPTIONS = ["name", "company", "country", "timezone", "recent-activity"]

# Contact list activity window (days since last call/email)
ACTIVITY_WINDOW_DAYS = {
    "today": 0,
    "3days": 3,
    "week": 7,
    "month": 30,
    "3months": 90,
    "6months": 180,
    "year": 365,
}

# Realtime change events
CHANGE_EVENTS = ["INSERT", "UPDATE", "DELETE"]

# Preference keys stored in user_preferences (category.key)
PREFERENCE_KEYS = {
    "ui": ["button_order", "visible_filters", "panel_order", "priority_labels"],
    "notepad": ["content"],
}

DEFAULT_WORKSPACE_NAME = "Work"
DEFAULT_WORKSPACE_COLOR = "#3B82F6"

# Roles a workspace owner can grant; "owner" is implied by Workspace.user_id
WORKSPACE_MEMBER_ROLES = ["admin", "member"]
