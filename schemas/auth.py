from pydantic import BaseModel

# ✅ login request
class LoginRequest(BaseModel):
    username: str
    password: str

# ✅ login response (the token is also set as the session cookie)
class LoginResponse(BaseModel):
    status: str = "success"
    role_name: str
    token: str
