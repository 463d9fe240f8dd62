"""2Captcha 이미지 CAPTCHA 풀이 클라이언트."""
from .two_captcha import TwoCaptchaClient

__all__ = ["TwoCaptchaClient"]
