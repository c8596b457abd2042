from typing import Dict, List

# ✅ tables editable from the admin user-setting page and their insert columns
USER_TABLES: Dict[str, List[str]] = {
    "students": ["student_id", "student_name", "citizen_id", "role_id", "major_id",
                 "faculty_id", "std_faculty", "room_id"],
    "teachers": ["teacher_name", "username", "password", "role_id"],
    "admins": ["admin_name", "username", "password", "role_id"],
}

USER_TABLE_LABELS: Dict[str, str] = {
    "students": "นักเรียน",
    "teachers": "อาจารย์",
    "admins": "ผู้ดูแลระบบ",
}

# system columns never written back on update
READ_ONLY_COLUMNS = ("id", "created_at")
