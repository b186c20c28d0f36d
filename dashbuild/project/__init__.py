"""Project output — compiling pages, writing files and rendering the site."""
