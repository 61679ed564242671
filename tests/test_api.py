"""
End-to-end tests of the public routes: users, task catalog and the
take/submit lifecycle.
"""

from fastapi.testclient import TestClient


def test_root_reports_running(client: TestClient):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "WritersInn backend is running"}


def test_add_user_and_fetch_profile(client: TestClient, register_user):
    user = register_user(email="  Writer@Example.com ")

    assert user["email"] == "writer@example.com"
    assert user["balance"] == 0
    assert user["subscribed"] is False

    response = client.get("/user/WRITER@example.com")
    assert response.status_code == 200
    assert response.json()["id"] == user["id"]


def test_add_user_requires_all_fields(client: TestClient):
    response = client.post("/add-user", json={"name": "Writer", "email": "w@example.com"})
    assert response.status_code == 400
    assert response.json() == {
        "detail": "Name, email, and phone are required",
        "code": "validation_error",
    }


def test_duplicate_email_is_rejected(client: TestClient, register_user):
    register_user()
    response = client.post(
        "/add-user",
        json={"name": "Again", "email": "writer@example.com", "phone": "123"},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "conflict"


def test_unknown_user_is_not_found(client: TestClient):
    response = client.get("/user/ghost@example.com")
    assert response.status_code == 404
    assert response.json()["detail"] == "User not found"


def test_task_catalog_and_attachment(client: TestClient, add_task):
    task = add_task(price="25")
    assert task["price"] == 25.0
    assert task["file_url"] == f"/files/tasks/{task['file_path']}"

    tasks = client.get("/tasks").json()
    assert [t["id"] for t in tasks] == [task["id"]]

    download = client.get(task["file_url"])
    assert download.status_code == 200
    assert download.content == b"%PDF-1.4 brief"


def test_take_and_submit_lifecycle(
    client: TestClient, register_user, add_task, fake_notifier
):
    register_user()
    first = add_task(title="First", price="25")
    second = add_task(title="Second", price="10")

    available = client.get("/available-tasks/writer@example.com").json()
    assert {t["id"] for t in available} == {first["id"], second["id"]}

    taken = client.post(
        "/take-task", json={"email": "writer@example.com", "task_id": first["id"]}
    )
    assert taken.status_code == 200, taken.text
    body = taken.json()
    assert body["message"] == "✅ Task assigned and instructions sent to your email"
    assignment = body["assignment"]
    assert assignment["status"] == "pending"
    assert assignment["is_overdue"] is False
    assert fake_notifier.sent[-1].subject == "New Task Assigned: First"

    blocked = client.post(
        "/take-task", json={"email": "writer@example.com", "task_id": second["id"]}
    )
    assert blocked.status_code == 403
    assert blocked.json()["code"] == "cooldown_violation"

    available = client.get("/available-tasks/writer@example.com").json()
    assert [t["id"] for t in available] == [second["id"]]

    submitted = client.post(
        "/submit-task",
        data={"email": "writer@example.com", "assignment_id": assignment["id"]},
        files={"file": ("essay.docx", b"My essay.", "application/octet-stream")},
    )
    assert submitted.status_code == 200, submitted.text
    result = submitted.json()["assignment"]
    assert result["status"] == "completed"
    assert result["task_price"] == 25.0
    assert result["submitted_at"] is not None
    assert fake_notifier.sent[-1].subject == "Task Submission Received"

    assert client.get("/user/writer@example.com").json()["balance"] == 25.0

    again = client.post(
        "/submit-task",
        data={"email": "writer@example.com", "assignment_id": assignment["id"]},
        files={"file": ("essay.docx", b"My essay.", "application/octet-stream")},
    )
    assert again.status_code == 409
    assert again.json()["code"] == "already_submitted"
    assert client.get("/user/writer@example.com").json()["balance"] == 25.0

    # A completed assignment still blocks inside the cooldown window.
    still_blocked = client.post(
        "/take-task", json={"email": "writer@example.com", "task_id": second["id"]}
    )
    assert still_blocked.status_code == 403

    history = client.get("/assignments/writer@example.com").json()
    assert len(history) == 1
    assert history[0]["task"]["title"] == "First"


def test_take_task_requires_email_and_task(client: TestClient):
    response = client.post("/take-task", json={"email": "writer@example.com"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Email and task ID are required"


def test_submit_task_requires_file(client: TestClient, register_user, add_task):
    register_user()
    task = add_task()
    assignment = client.post(
        "/take-task", json={"email": "writer@example.com", "task_id": task["id"]}
    ).json()["assignment"]

    response = client.post(
        "/submit-task",
        data={"email": "writer@example.com", "assignment_id": assignment["id"]},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Missing data or file"


def test_submit_rejects_other_users_assignment(
    client: TestClient, register_user, add_task
):
    register_user()
    register_user(email="other@example.com", name="Other")
    task = add_task()
    assignment = client.post(
        "/take-task", json={"email": "writer@example.com", "task_id": task["id"]}
    ).json()["assignment"]

    response = client.post(
        "/submit-task",
        data={"email": "other@example.com", "assignment_id": assignment["id"]},
        files={"file": ("essay.docx", b"Not mine.", "application/octet-stream")},
    )
    assert response.status_code == 403
    assert response.json()["code"] == "forbidden"
    assert client.get("/user/other@example.com").json()["balance"] == 0
