"""
Service for handling Excel file uploads of the student roster.
"""

import pandas as pd
import logging
from typing import Tuple

from config import ROSTER_REQUIRED_HEADERS, DEFAULT_STUDENT_PASSWORD
from portal.models.profile import Profile
from utils import normalize_email

logger = logging.getLogger(__name__)


def validate_roster_excel(file_path: str) -> Tuple[bool, str, pd.DataFrame]:
    """
    Validate the uploaded roster Excel file.

    Returns:
        Tuple of (is_valid, error_message, dataframe)
    """
    try:
        df = pd.read_excel(file_path, dtype=str)
    except Exception as e:
        logger.error(f"Error reading roster Excel file: {e}")
        return False, f"Error reading Excel file: {str(e)}", None

    if df.empty:
        return False, "Excel file is empty", None

    # Convert column names to lowercase for comparison
    df.columns = df.columns.str.strip().str.lower()

    missing_headers = [h for h in ROSTER_REQUIRED_HEADERS if h not in df.columns]
    if missing_headers:
        return False, f"Missing required columns: {', '.join(missing_headers)}. Required: {', '.join(ROSTER_REQUIRED_HEADERS)}", None

    if df[ROSTER_REQUIRED_HEADERS].isnull().any().any():
        return False, "Excel file contains empty values in required columns", None

    for column in ROSTER_REQUIRED_HEADERS:
        df[column] = df[column].astype(str).str.strip()
    df['email'] = df['email'].map(normalize_email)

    df = df[(df['email'] != '') & (df['full_name'] != '')]

    if df.empty:
        return False, "No valid student records found after cleaning", None

    return True, "", df


def process_roster_excel(file_path: str, password: str = DEFAULT_STUDENT_PASSWORD) -> Tuple[bool, str, dict]:
    """
    Process the uploaded Excel file and add students to the database.

    Returns:
        Tuple of (success, message, stats_dict)
    """
    is_valid, error_msg, df = validate_roster_excel(file_path)
    if not is_valid:
        return False, error_msg, {}

    students_data = [
        (row['email'], row['full_name'], row['department'], row['student_id'])
        for _, row in df.iterrows()
    ]

    added_count, duplicate_count, duplicates = Profile.bulk_add_students(students_data, password)

    stats = {
        'total': len(students_data),
        'added': added_count,
        'duplicates': duplicate_count,
        'duplicate_list': duplicates[:20]  # Limit to first 20 for display
    }

    if added_count > 0:
        message = f"Successfully added {added_count} students. "
        if duplicate_count > 0:
            message += f"{duplicate_count} duplicates were skipped."
        logger.info(message.strip())
        return True, message.strip(), stats
    return False, f"No new students added. All {duplicate_count} records were duplicates.", stats
