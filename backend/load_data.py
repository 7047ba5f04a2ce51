"""
Data Loader Script - Loads sample_students.json into the platform via API.

Creates the sample courses first, then the students enrolled in them.
This can be run from inside the backend container or from the host.

Usage:
    python load_data.py                              # Uses default URL
    python load_data.py http://localhost:8000         # Custom API URL
    python load_data.py http://backend:8000           # Inside Docker network
"""

import json
import sys
import os

import httpx


def post_json(client, url, data):
    resp = client.post(url, json=data)
    if resp.status_code >= 400:
        return None, resp.json().get("message", resp.text)
    return resp.json(), None


def find_data_file():
    data_file = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "sample_students.json")
    if not os.path.exists(data_file):
        # Try current directory
        data_file = "sample_students.json"
    return data_file


def main():
    api_url = sys.argv[1] if len(sys.argv) > 1 else os.getenv("API_URL", "http://localhost:8000")

    data_file = find_data_file()
    if not os.path.exists(data_file):
        print("Error: Could not find sample_students.json")
        sys.exit(1)

    print(f"Loading data from: {data_file}")
    with open(data_file, 'r') as f:
        data = json.load(f)

    created_students = 0
    errors = []

    with httpx.Client(timeout=30.0) as client:
        # Courses are referenced by title in the sample file
        course_ids = {}
        existing = client.get(f"{api_url}/api/courses")
        existing.raise_for_status()
        for course in existing.json():
            course_ids[course["title"]] = course["_id"]

        for course in data.get("courses", []):
            if course["title"] in course_ids:
                continue
            result, error = post_json(client, f"{api_url}/api/courses", course)
            if error:
                errors.append(f"course {course['title']}: {error}")
                continue
            course_ids[result["title"]] = result["_id"]

        for student in data.get("students", []):
            payload = dict(student)
            titles = payload.pop("courses", [])
            payload["courseIds"] = [course_ids[t] for t in titles if t in course_ids]
            result, error = post_json(client, f"{api_url}/api/students", payload)
            if error:
                errors.append(f"student {student.get('email')}: {error}")
                continue
            created_students += 1
            print(f"  ✅ {result['studentId']}: {result['fullName']} ({len(result['enrolledCourses'])} courses)")

    print()
    print("=" * 60)
    print("LOAD SUMMARY")
    print("=" * 60)
    print(f"  Courses available:   {len(course_ids)}")
    print(f"  Students created:    {created_students}")
    print(f"  Errors:              {len(errors)}")
    print("=" * 60)
    for error in errors:
        print(f"  ❌ {error}")


if __name__ == "__main__":
    main()
