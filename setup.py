from setuptools import find_packages, setup

setup(
    name="storefront-core",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["app", "bootloader"],
    install_requires=[
        "fastapi",
        "uvicorn",
        "python-multipart",
        "pydantic>=2",
        "aiohttp",
        "openai>=1.0",
        "redis>=4.2",
        "python-dotenv",
        "PyYAML",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "httpx",
        ],
    },
    python_requires=">=3.11",
    description="Multi-tenant social-commerce core: item extraction, parse jobs and draft autosave",
)
