"""Streamlit entrypoint registering the home screen and the application form."""

import streamlit as st


def main() -> None:
    """Run the page selected in the navigation menu."""

    navigation = st.navigation(
        [
            st.Page("Home.py", title="Overview", icon="🏠", default=True),
            st.Page("pages/01_Application_Form.py", title="Application form", icon="📝"),
        ]
    )
    navigation.run()


if __name__ == "__main__":
    main()
