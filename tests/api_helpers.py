"""Request helpers shared by the API tests."""


async def register(ac, email="nino@example.com", password="demo123", full_name=None):
    body = {"email": email, "password": password}
    if full_name:
        body["fullName"] = full_name
    resp = await ac.post("/auth/register", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def host_login(ac, password="editor"):
    resp = await ac.post("/auth/host-login", json={"password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()


def draft(**overrides):
    body = {
        "authorName": "Нино Тариели",
        "authorEmail": "nino@example.com",
        "questionText": "Какой символ на башне альфы в Батуми виден только из моря?",
        "answerText": "Фигура сокола",
    }
    body.update(overrides)
    return body
