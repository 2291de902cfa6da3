import os

# Database configuration
DATABASE_PATH = os.environ.get(
    'FEEDBACK_DB_PATH',
    os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data', 'feedback.db')
)

SECRET_KEY = os.environ.get('SECRET_KEY', 'your_secret_key_change_in_production')

# Roles stored in profiles.user_role
ROLE_STUDENT = 'student'
ROLE_TEACHER = 'teacher'
ROLES = (ROLE_STUDENT, ROLE_TEACHER)

# Closed 1-5 rating scale, no partial ratings
RATING_VALUES = (1, 2, 3, 4, 5)

# Completion badge bands (floor percentage)
COMPLETION_SUCCESS_THRESHOLD = 75
COMPLETION_WARNING_THRESHOLD = 50

# Upload configuration
UPLOAD_FOLDER = 'uploads'
ALLOWED_EXTENSIONS = {'xlsx', 'xls'}
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB

# Password given to students created from a roster upload
DEFAULT_STUDENT_PASSWORD = os.environ.get('DEFAULT_STUDENT_PASSWORD', 'changeme')

# Required roster headers
ROSTER_REQUIRED_HEADERS = ['email', 'full_name', 'department', 'student_id']

DATE_FORMAT = '%Y-%m-%d'
