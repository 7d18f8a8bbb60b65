"""
Noteworthy 오디오 전사 파이프라인

긴 녹음을 겹치는 윈도우로 나누어 원격 전사 서비스에 병렬 전송하고,
결과를 순서대로 재조립하여 화자 구분 전사문을 만듭니다.
"""

__version__ = "0.1.0"
