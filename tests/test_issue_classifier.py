import pytest

from mobile_observability.processors.issue_classifier import classify_issue

ANDROID_CRASH = """FATAL EXCEPTION: main
Process: com.shop.app, PID: 4242
java.lang.NullPointerException: Attempt to invoke virtual method on a null object reference
    at com.shop.cart.CartFragment.onViewCreated(CartFragment.kt:58)
"""

ANDROID_ANR = """ANR in com.shop.app (com.shop.app/.MainActivity)
Reason: Input dispatching timed out (Waiting to send non-key event)
"""

IOS_CRASH = """Exception Type:  EXC_BAD_ACCESS (SIGSEGV)
Exception Codes: KERN_INVALID_ADDRESS at 0x0000000000000010
Thread 0 Crashed:
0   libobjc.A.dylib   objc_msgSend + 16
"""

IOS_WATCHDOG = """Termination Reason: FRONTBOARD 2343432205
<RBSTerminateContext| domain:10 code:0x8BADF00D explanation:scene-update watchdog transgression>
"""

FLUTTER_ERROR = """Unhandled Exception: Null check operator used on a null value
#0      _CartState.build (package:shop/cart.dart:42:7)
"""


@pytest.mark.parametrize(
    "text, issue_type, platform",
    [
        (ANDROID_CRASH, "crash", "android"),
        (ANDROID_ANR, "anr", "android"),
        (IOS_CRASH, "crash", "ios"),
        (IOS_WATCHDOG, "hang", "ios"),
        (FLUTTER_ERROR, "crash", "flutter"),
        ("the app takes 6 seconds on cold start", "startup", None),
    ],
)
def test_classifies_type_and_platform(text, issue_type, platform):
    result = classify_issue(text)
    assert result.type == issue_type
    assert result.platform == platform


def test_signals_are_unique_and_capped():
    result = classify_issue(IOS_CRASH)

    assert "EXC_BAD_ACCESS" in result.signals
    assert len(result.signals) == len(set(result.signals))
    assert len(result.signals) <= 8
    assert result.as_query().startswith("crash ")


def test_empty_input_is_unknown():
    result = classify_issue("   ")
    assert result.type == "unknown"
    assert result.platform is None
    assert result.signals == []


def test_startup_in_class_name_does_not_mask_crash():
    trace = """FATAL EXCEPTION: main
java.lang.NullPointerException: Attempt to invoke virtual method on a null object reference
    at com.shop.StartupActivity.onCreate(StartupActivity.kt:31)
"""
    result = classify_issue(trace)

    assert result.type == "crash"
    assert result.platform == "android"
    assert "Startup" not in result.signals


def test_startup_symptom_phrases():
    assert classify_issue("startup time regressed to 3s after the SDK update").type == "startup"
    assert classify_issue("users report a slow startup on Pixel 6").type == "startup"
