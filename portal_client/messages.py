from __future__ import annotations

from .errors import ErrorKind

PARSE_FAILURE_MESSAGE = "Failed to parse response"

# Exact-match only. Unmapped backend messages are passed through unchanged.
TRANSLATIONS: dict[str, str] = {
    "Invalid credentials.": "Tên đăng nhập hoặc mật khẩu không đúng.",
    "Username and password are required.": "Vui lòng nhập tên đăng nhập và mật khẩu.",
    "Refresh token is required.": "Phiên đăng nhập đã hết hạn. Vui lòng đăng nhập lại.",
    "Invalid refresh token.": "Phiên đăng nhập đã hết hạn. Vui lòng đăng nhập lại.",
    "Refresh token mismatch.": "Phiên đăng nhập đã hết hạn. Vui lòng đăng nhập lại.",
    "Failed to refresh token.": "Không thể làm mới phiên đăng nhập.",
    "User not found.": "Không tìm thấy người dùng.",
    "Old password is incorrect.": "Mật khẩu cũ không đúng.",
    "New password must be at least 8 characters long.": "Mật khẩu mới phải có ít nhất 8 ký tự.",
    "Failed to register user.": "Đăng ký tài khoản không thành công.",
    "Failed to log in.": "Đăng nhập không thành công.",
    "Failed to change password.": "Đổi mật khẩu không thành công.",
    "Unauthorized": "Vui lòng đăng nhập để tiếp tục.",
    "Forbidden": "Bạn không có quyền truy cập vào tài nguyên này.",
    "Not Found": "Không tìm thấy dữ liệu.",
    "Internal Server Error": "Hệ thống đang gặp sự cố. Vui lòng thử lại sau.",
}

DEFAULT_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.NETWORK: "Không thể kết nối đến máy chủ.",
    ErrorKind.TIMEOUT: "Yêu cầu bị hủy do quá thời gian chờ.",
    ErrorKind.VALIDATION: "Dữ liệu không hợp lệ.",
    ErrorKind.PERMISSION: "Bạn không có quyền truy cập vào tài nguyên này.",
    ErrorKind.NOT_FOUND: "Không tìm thấy dữ liệu.",
    ErrorKind.SESSION_EXPIRED: "Phiên đăng nhập đã hết hạn. Vui lòng đăng nhập lại.",
    ErrorKind.AUTH: "Phiên đăng nhập đã hết hạn. Vui lòng đăng nhập lại.",
    ErrorKind.SERVER: "Hệ thống đang gặp sự cố. Vui lòng thử lại sau.",
}


def translate(message: str) -> str:
    return TRANSLATIONS.get(message, message)


def default_message(kind: ErrorKind) -> str:
    return DEFAULT_MESSAGES[kind]
