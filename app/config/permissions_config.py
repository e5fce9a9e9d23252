"""
Permissions and Roles Configuration
This config defines the permission matrix for every module and which platform
role (admin, teacher, student) is granted each permission.
Role membership itself lives in profiles.role; there are no role tables.
"""

from typing import Dict, List

ROLES = ("admin", "teacher", "student")
SELF_REGISTRATION_ROLES = ("student", "teacher")

# Define modules and their actions
MODULES = {
    "profiles": {
        "resource": "profiles",
        "actions": ["read", "update", "delete", "import"],
        "description": "User profile management"
    },
    "assignments": {
        "resource": "assignments",
        "actions": ["create", "read", "update", "delete"],
        "description": "Assignment management"
    },
    "phases": {
        "resource": "phases",
        "actions": ["create", "read", "update", "delete"],
        "description": "Assignment phase management"
    },
    "teams": {
        "resource": "teams",
        "actions": ["create", "read", "update", "delete", "manage_members"],
        "description": "Team formation"
    },
    "invitations": {
        "resource": "invitations",
        "actions": ["create", "read", "respond"],
        "description": "Team invitations"
    },
    "chat": {
        "resource": "chat",
        "actions": ["read", "write"],
        "description": "Team chat"
    },
    "dashboard": {
        "resource": "dashboard",
        "actions": ["read"],
        "description": "Role dashboards"
    }
}

# Additional descriptions for non-CRUD actions
MODULE_SPECIFIC_PERMISSIONS = {
    "profiles": {
        "update": "Update other users' profiles and roles",
        "import": "Bulk import users from CSV"
    },
    "teams": {
        "manage_members": "Remove members and transfer leadership"
    },
    "invitations": {
        "respond": "Accept or decline team invitations"
    },
    "chat": {
        "write": "Send and delete chat messages"
    }
}

# Permissions per platform role; "*" grants every permission
ROLE_PERMISSIONS: Dict[str, List[str]] = {
    "admin": ["*"],
    "teacher": [
        "profiles:read",
        "assignments:create", "assignments:read", "assignments:update", "assignments:delete",
        "phases:create", "phases:read", "phases:update", "phases:delete",
        "teams:read", "teams:update", "teams:delete", "teams:manage_members",
        "invitations:read",
        "chat:read", "chat:write",
        "dashboard:read",
    ],
    "student": [
        "profiles:read",
        "assignments:read",
        "phases:read",
        "teams:create", "teams:read", "teams:update", "teams:delete", "teams:manage_members",
        "invitations:create", "invitations:read", "invitations:respond",
        "chat:read", "chat:write",
        "dashboard:read",
    ],
}

ROLE_DESCRIPTIONS = {
    "admin": "Full administrative access",
    "teacher": "Creates assignments and monitors student teams",
    "student": "Forms teams, answers invitations and chats with teammates",
}


def get_permission_matrix():
    """
    Returns a dictionary with all permissions and their associated roles
    Format: {
        "permissions": [
            {"name": "teams:create", "resource": "teams", "action": "create", "description": "..."},
            ...
        ],
        "roles": [
            {"name": "student", "description": "...", "permissions": ["teams:create", ...]},
            ...
        ]
    }
    """
    permissions = []
    roles = []

    for module_name, module_config in MODULES.items():
        resource = module_config["resource"]

        for action in module_config["actions"]:
            description = f"{action.capitalize()} {resource}"
            if module_name in MODULE_SPECIFIC_PERMISSIONS and action in MODULE_SPECIFIC_PERMISSIONS[module_name]:
                description = MODULE_SPECIFIC_PERMISSIONS[module_name][action]

            permissions.append({
                "name": f"{resource}:{action}",
                "resource": resource,
                "action": action,
                "description": description
            })

    for role in ROLES:
        roles.append({
            "name": role,
            "description": ROLE_DESCRIPTIONS[role],
            "permissions": get_role_permissions(role)
        })

    return {
        "permissions": permissions,
        "roles": roles
    }


def _all_permission_names() -> List[str]:
    return [
        f"{config['resource']}:{action}"
        for config in MODULES.values()
        for action in config["actions"]
    ]


def get_role_permissions(role: str) -> List[str]:
    """Expand a role's permission list; unknown roles get nothing."""
    granted = ROLE_PERMISSIONS.get(role, [])
    if "*" in granted:
        return sorted(_all_permission_names())
    return sorted(granted)


def has_permission(role: str, permission: str) -> bool:
    granted = ROLE_PERMISSIONS.get(role, [])
    return "*" in granted or permission in granted


