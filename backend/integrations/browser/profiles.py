"""제공자별 웹 콘솔 자동화 프로필.

셀렉터는 실제 콘솔 화면에 종속적이므로 UI 변경 시 여기만 고친다.
"""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ProviderProfile:
    name: str
    console_url: str
    login_url: str
    status_url: str
    username_selector: str
    password_selector: str
    submit_selector: str
    login_hosts: tuple[str, ...] = ()
    login_url_prefixes: tuple[str, ...] = ()
    login_form_selector: Optional[str] = None
    captcha_image_selector: Optional[str] = None
    captcha_question_selector: Optional[str] = None
    captcha_answer_selector: Optional[str] = None
    captcha_error_texts: tuple[str, ...] = ()
    success_host: Optional[str] = None  # 수동 로그인 완료 판정 호스트
    requires_session: bool = False  # 저장된 쿠키 없이 제출 불가
    locale: Optional[str] = None  # 미지정시 설정값
    timezone: Optional[str] = None


NAVER_PROFILE = ProviderProfile(
    name="NAVER",
    console_url="https://searchadvisor.naver.com/console/site/request/crawl?site={site}",
    login_url="https://nid.naver.com/nidlogin.login",
    status_url="https://searchadvisor.naver.com/console/board",
    username_selector="#id",
    password_selector="#pw",
    submit_selector='button[type="submit"]',
    login_hosts=("nid.naver.com",),
    captcha_image_selector="#captchaimg",
    captcha_question_selector=".bill_message em",
    captcha_answer_selector="#captcha",
    captcha_error_texts=("자동 등록 방지를 위한 문자를 잘못 입력하셨습니다.",),
    success_host="www.naver.com",
    requires_session=True,
)

DAUM_PROFILE = ProviderProfile(
    name="DAUM",
    console_url="https://webmaster.daum.net/tool/collect",
    login_url="https://webmaster.daum.net/tool/collect",
    status_url="https://webmaster.daum.net/tool/collect",
    username_selector="#authSiteUrl",
    password_selector="#authPinCode",
    submit_selector="button.btn_register",
    login_url_prefixes=("https://webmaster.daum.net/login",),
    login_form_selector="form.form_register input#authSiteUrl",
)
